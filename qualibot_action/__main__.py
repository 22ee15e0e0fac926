import sys

from qualibot_action.main import main

sys.exit(main())
