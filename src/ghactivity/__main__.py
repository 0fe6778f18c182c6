import sys

from ghactivity.cli import main

sys.exit(main())
