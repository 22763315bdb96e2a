from docgrant.models.grant import AccessGrant, AccessLevel

__all__ = ["AccessGrant", "AccessLevel"]
