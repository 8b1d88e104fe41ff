"""Command-line drivers: clusterctl-manage and clusterctl-check."""
