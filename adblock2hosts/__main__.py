import sys

from adblock2hosts.pipeline import main

sys.exit(main())
