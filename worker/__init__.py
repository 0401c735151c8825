"""Worker process: pulls tasks from the coordinator and runs them."""
