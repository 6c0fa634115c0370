"""Model host: S3-backed 3D model uploads with live WebSocket notifications."""
