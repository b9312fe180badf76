import sys

from crypto_profiler.cli import main

sys.exit(main())
