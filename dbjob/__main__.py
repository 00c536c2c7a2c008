import sys

from dbjob.cli import main

sys.exit(main())
