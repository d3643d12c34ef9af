import sys

from tab_organizer.cli import main

sys.exit(main())
