import sys

from secret_mcp.main import main

sys.exit(main())
