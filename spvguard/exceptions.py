class _BaseSpvguardException(Exception):
    """
    Base spvguard exception class.

    This exception is not raised directly. Other exceptions inherit it in
    order to display source locations and hints in the error string.
    """

    def __init__(self, message="Error Message not found.", lineno=None, col_offset=None, hint=None):
        """
        Exception initializer.

        Arguments
        ---------
        message : str
            Error message to display with the exception.
        lineno : int, optional
            Line of the assembly text where the error occurred.
        col_offset : int, optional
            Column of the assembly text where the error occurred.
        hint : str | Callable[[], str], optional
            Additional hint, computed lazily if callable.
        """
        self._message = message
        self._hint = hint
        self.lineno = lineno
        self.col_offset = col_offset

    @property
    def hint(self):
        # some hints are expensive to compute, so we wait until the last
        # minute when the formatted message is actually requested to compute
        # them.
        if callable(self._hint):
            return self._hint()
        return self._hint

    @property
    def message(self):
        msg = self._message
        if self.hint:
            msg += f"\n\n  (hint: {self.hint})"
        return msg

    def __str__(self):
        if self.lineno is not None:
            col_offset_str = "" if self.col_offset is None else str(self.col_offset)
            return f"line {self.lineno}:{col_offset_str} {self.message}"
        return self.message


class SpvguardException(_BaseSpvguardException):
    pass


class ParserException(SpvguardException):
    """Malformed assembly text."""


class InvalidModule(SpvguardException):
    """The module is structurally invalid, e.g. an id is defined twice."""


class UnknownPass(SpvguardException):
    """A pass name was requested which is not registered."""


class EvaluationError(SpvguardException):
    """An instruction cannot be evaluated by the reference evaluator."""

