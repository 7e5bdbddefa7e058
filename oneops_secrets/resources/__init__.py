"""Trust stores bundled with the CLI (loaded when trust_store.file_resource is false)."""
