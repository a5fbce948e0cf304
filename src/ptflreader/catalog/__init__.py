"""In-memory catalog of decoded scans."""
