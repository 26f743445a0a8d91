"""Blueprint studio host: the studio manager, the HTTP API and the CLI."""
