"""Erreurs applicatives renvoyées au client sous forme JSON."""


class ApiError(Exception):
    """Erreur de base : un message et un code HTTP."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidQuery(ApiError):
    """Paramètres de requête invalides ; le client doit les corriger."""

    status_code = 400


class NotFound(ApiError):
    """Vente ou magasin inexistant."""

    status_code = 404


class UpstreamUnavailable(ApiError):
    """La base de données est injoignable (chemin principal ET repli)."""

    status_code = 503
