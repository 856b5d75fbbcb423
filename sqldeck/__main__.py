import sys

from sqldeck.cli import main

sys.exit(main())
