"""Chat digest: buffered group chat messages summarized on a schedule."""
