"""samlsp - SAML service provider bootstrap and IdP metadata resolution."""

__version__ = "0.1.0"
