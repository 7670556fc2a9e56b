"""web/ -- Server-rendered pages, error views, and packaged templates/static files."""
