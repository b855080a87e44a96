import sys

from gigaindex.cli.main import main

sys.exit(main())
