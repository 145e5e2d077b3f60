import sys

from shellrun.cli.main import main

sys.exit(main())
