"""Site report rendering: statistics mapping, charts, and the PDF builder."""
