import sys

from taskpeek.cmd.main import main

sys.exit(main())
