"""HTTP API for quoting and executing swaps."""
