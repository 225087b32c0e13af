"""Dashboard backend: JSON API proxying Kubernetes calls for the browser UI."""
