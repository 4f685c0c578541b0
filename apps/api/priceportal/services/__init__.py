"""Domain services. Routes stay thin; everything that touches more than one table lives here."""
