"""ghbackport test suite."""
