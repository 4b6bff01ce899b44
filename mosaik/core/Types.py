from enum import Enum, auto


class NodeKind(Enum):
    PROMPT = "Prompt"
    FILE_IMPORT = "FileImport"
    FILE_EXPORT = "FileExport"
    MODEL = "Model"


class ProviderType(Enum):
    OLLAMA = "ollama"
    ANTHROPIC = "anthropic"

    @property
    def title(self) -> str:
        return "Ollama" if self == ProviderType.OLLAMA else "Anthropic"


class MessageRole(Enum):
    USER = "user"
    ASSISTANT = "assistant"


class PortType(Enum):
    INPUT = auto()
    OUTPUT = auto()


class PointerButton(Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    MIDDLE = "middle"


class WheelDeltaMode(Enum):
    PIXELS = "pixels"
    LINES = "lines"
    PAGES = "pages"

    @property
    def scale(self) -> float:
        # wheel units -> zoom delta; scrolling down (positive y) zooms out
        if self == WheelDeltaMode.PIXELS:
            return -0.01
        elif self == WheelDeltaMode.LINES:
            return -0.05
        return -0.2
