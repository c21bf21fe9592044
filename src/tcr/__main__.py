from tcr.cli import main

raise SystemExit(main())
