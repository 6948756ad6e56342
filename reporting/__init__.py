"""Weekly reports and PDF rendering."""
