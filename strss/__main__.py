from strss.app import main

raise SystemExit(main())
