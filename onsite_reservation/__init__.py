"""
Onsite Reservation - authentication service

Registration, login, logout and session inspection for the reservation
system backend, built on FastAPI and fastapi-users.
"""

__version__ = "0.1.0"
__description__ = "Authentication surface for the onsite reservation system"
