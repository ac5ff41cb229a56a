"""genflow core: configuration loading and the invocation graph."""
