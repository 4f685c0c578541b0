"""Price portal API: price groups, access requests and admin reporting."""
