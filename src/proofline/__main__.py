"""Allow ``python -m proofline``."""

from .app import main

raise SystemExit(main())
