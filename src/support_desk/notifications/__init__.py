"""Email delivery: provider client and HTML templates."""
