"""Services: git, conflict resolution, deletion ladder, backups, results and bulk operations."""
