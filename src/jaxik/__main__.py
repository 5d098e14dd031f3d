import sys

from jaxik.cli import main

sys.exit(main())
