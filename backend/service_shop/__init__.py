"""Service shop backend: customer accounts, their vehicles and service bookings.

`main.create_app` builds the FastAPI application; the other modules hold
the tables, request schemas, token handling and the business rules it wires
together.
"""
