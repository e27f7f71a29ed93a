import sys

from killmonitor.cli import main

sys.exit(main())
