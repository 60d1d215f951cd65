from rendering.models import RenderedDocument, Element
from rendering.engine import (
    RenderingBackend,
    RenderError,
    TransientFetchError,
    RenderTimeoutError,
    NavigationError,
    InvalidUrlError,
)
