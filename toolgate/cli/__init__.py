"""toolgate command line interface."""
