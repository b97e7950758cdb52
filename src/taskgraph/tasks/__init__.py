"""Task document model, grammar and file I/O."""
