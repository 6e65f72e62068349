import sys

from condarb.app import main

sys.exit(main())
