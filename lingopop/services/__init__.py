"""Service layer shared by the web application and the command line."""
