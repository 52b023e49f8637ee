"""Failure taxonomy for the routing pipeline.

Each error carries the HTTP status the RPC routes answer with. Inside the
pipeline most of them are caught and turned into "no bot responds".
"""


class RoutingError(Exception):
    status_code = 500

    def __init__(self, detail: str = ""):
        super().__init__(detail)
        self.detail = detail or self.__class__.__name__


class StoreUnavailable(RoutingError):
    status_code = 503


class BotNotFound(RoutingError):
    status_code = 404


class BotNotConfigured(RoutingError):
    status_code = 400


class InvalidModel(BotNotConfigured):
    pass


class ClassificationMalformed(RoutingError):
    status_code = 500


class GenerationFailed(RoutingError):
    status_code = 502


class Unauthorized(RoutingError):
    status_code = 403
