"""Natural-language task capture backed by a delegated task provider."""
