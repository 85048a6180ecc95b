from __future__ import annotations


class CodegenError(Exception):
    """Base class for every failure collected during a generator run."""


class CatalogParseError(CodegenError, ValueError):
    def __init__(self, message: str, *, errors: list[str] | None = None) -> None:
        self.message = message
        self.errors = list(errors or [])
        super().__init__(str(self))

    def __str__(self) -> str:
        if not self.errors:
            return self.message
        return self.message + "\n" + "\n".join(f"- {line}" for line in self.errors)


class LayoutError(CodegenError, ValueError):
    pass


class ApiNotFoundError(CodegenError):
    def __init__(self, api: str) -> None:
        self.api = api
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"Could not find API details for: {self.api}"


class GenerateError(CodegenError):
    def __init__(self, service: str, error: Exception) -> None:
        self.service = service
        self.error = error
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"API {self.service} failed to generate code: {self.error}"


class FormatError(CodegenError):
    def __init__(self, output: str) -> None:
        self.output = output
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"Formatter failed to format:\n{self.output}"
