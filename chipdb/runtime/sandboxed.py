from .provider import ExecutablePathProvider


class SandboxedProvider(ExecutablePathProvider):
    """Platforms without a real filesystem view of the executable (Emscripten, WASI)."""

    def executable_dir(self) -> str:
        return "/"
