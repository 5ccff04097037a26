import sys

from faber.cli import main

sys.exit(main())
