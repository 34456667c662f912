import sys

from qcdops.cli import main

sys.exit(main())
