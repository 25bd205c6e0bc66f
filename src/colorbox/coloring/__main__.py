import sys

from colorbox.coloring.app import main

sys.exit(main())
