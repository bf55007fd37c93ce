"""CSV import wizard: upload, map, preview, approve, finalize."""
