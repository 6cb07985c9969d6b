from hostsweep.main import main

raise SystemExit(main())
