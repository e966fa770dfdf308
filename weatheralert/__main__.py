import sys

from weatheralert.cli import main

sys.exit(main())
