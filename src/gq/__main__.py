import sys

from gq.cli import main

sys.exit(main())
