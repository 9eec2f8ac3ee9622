"""akv — terminal browser for Azure Key Vault secrets."""

__version__ = "0.1.0"
