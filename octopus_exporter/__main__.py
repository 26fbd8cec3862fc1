import sys

from octopus_exporter.main import main

sys.exit(main())
