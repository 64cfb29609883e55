# CampusGate - HTTP surface and data access
