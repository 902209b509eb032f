"""KC Map: kid-friendly places ingested from OpenStreetMap."""
