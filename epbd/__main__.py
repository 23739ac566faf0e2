from epbd.cli import main

raise SystemExit(main())
