import sys

from akv.cli import main

sys.exit(main())
