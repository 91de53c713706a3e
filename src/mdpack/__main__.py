from __future__ import annotations

from mdpack.cli import main

raise SystemExit(main())
