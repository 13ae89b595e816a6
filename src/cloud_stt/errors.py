class CloudSttError(Exception):
    pass


class SttConnectionError(CloudSttError):
    pass


class VendorError(CloudSttError):
    def __init__(self, status: int, body: str, context: str = "API error") -> None:
        super().__init__(f"{context} ({status}): {body}")
        self.status = status
        self.body = body


class VendorJobError(CloudSttError):
    pass


class VendorStreamError(CloudSttError):
    def __init__(self, code: str, message: str, vendor: str = "stream") -> None:
        super().__init__(f"{vendor} error ({code}): {message}")
        self.code = code
        self.message = message


class StreamTimeoutError(CloudSttError):
    pass


class ResponseFormatError(CloudSttError):
    pass


class AudioFormatError(CloudSttError):
    pass


class EmptyTranscriptError(CloudSttError):
    pass


class UnknownProviderError(CloudSttError):
    def __init__(self, provider_id: str) -> None:
        super().__init__(f"Unknown cloud STT provider: {provider_id}")
        self.provider_id = provider_id
