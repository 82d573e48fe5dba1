import sys

from cvatmask.cli import main

sys.exit(main())
