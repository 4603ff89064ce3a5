"""StoreDesk: multi-tenant business management API and chat widget backend."""

__version__ = "0.1.0"
