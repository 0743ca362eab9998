import sys

from txledger.main import main

sys.exit(main())
