"""Router package exports."""
from . import admin, auth, dashboard, manager, profile, whatsapp

__all__ = [
	"admin",
	"auth",
	"dashboard",
	"manager",
	"profile",
	"whatsapp",
]
