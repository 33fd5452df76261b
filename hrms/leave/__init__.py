"""Leave module — requests, balances, conflict detection, status workflow and attendance sync."""
