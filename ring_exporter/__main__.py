import sys

from ring_exporter.cli import main

sys.exit(main())
