from osm2parquet.cli import main

raise SystemExit(main())
