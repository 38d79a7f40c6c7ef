"""gvs - a command line tool to manage multiple active Go versions."""
