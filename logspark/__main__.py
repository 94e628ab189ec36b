import sys

from logspark.cli import main

sys.exit(main())
