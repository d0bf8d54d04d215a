import sys

from src.mirth.cli import main

sys.exit(main())
