"""Message-level reads and writes that are addressed by message id."""
