"""Allow ``python -m redisops``."""

from redisops.cli import main

raise SystemExit(main())
