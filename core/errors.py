class VerbumError(Exception):
    """Base class for errors raised by the reader core and its services."""


class MissingCredentialError(VerbumError):
    def __init__(self, message="MISSING_API_KEY: no Gemini API key configured."):
        super().__init__(message)


class TransientServiceError(VerbumError):
    pass


class MalformedResponseError(VerbumError):
    pass


class AudioGenerationError(VerbumError):
    pass


AUDIO_ERROR_MESSAGE = "Erro ao gerar áudio. Tente novamente em instantes."
CREDENTIAL_ERROR_MESSAGE = "Chave de API não detectada. Configure GEMINI_API_KEY."


def describe_error(exc):
    """Map an exception to the short message shown to the reader."""
    if isinstance(exc, MissingCredentialError):
        return CREDENTIAL_ERROR_MESSAGE
    return AUDIO_ERROR_MESSAGE
