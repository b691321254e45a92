import sys

from postcard_sync.cli import main

sys.exit(main())
