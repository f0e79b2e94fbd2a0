import sys

from macrodef.main import main

sys.exit(main())
