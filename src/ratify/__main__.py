from ratify.cli import main

raise SystemExit(main())
