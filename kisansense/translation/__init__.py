"""Translation of advisory text into regional languages."""
