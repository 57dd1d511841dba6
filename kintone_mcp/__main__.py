from kintone_mcp.cli import main

raise SystemExit(main())
