class IconDesignerError(Exception):
    pass


class FormatError(IconDesignerError, ValueError):
    """Malformed ICO/SVG container. Aborts the whole parse."""


class DecodeError(IconDesignerError):
    """One embedded image could not be turned into pixels."""


class RenderError(IconDesignerError):
    """A layer's source is missing or undecodable during compositing."""


class ValidationError(IconDesignerError, ValueError):
    pass


class ExportCancelled(IconDesignerError):
    pass
