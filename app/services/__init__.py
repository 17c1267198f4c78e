"""
Services layer - business logic for complaints.

DESIGN PRINCIPLE:
- Services contain business logic, NOT routes
- The acting user is an explicit argument, never ambient state
- Upstream model and geocoder failures are absorbed here, not in routes
"""
