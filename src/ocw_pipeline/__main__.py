import sys

from ocw_pipeline.cli import main

sys.exit(main())
