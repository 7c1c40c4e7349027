"""Memory Muse web surface."""
