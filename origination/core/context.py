import contextvars

_bank_id: contextvars.ContextVar[str] = contextvars.ContextVar("bank_id", default="-")
_request_id: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")
_user_id: contextvars.ContextVar[str] = contextvars.ContextVar("user_id", default="-")


def set_bank_id(bank_id: str) -> None:
    _bank_id.set(bank_id)


def get_bank_id() -> str:
    return _bank_id.get()


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


def get_request_id() -> str:
    return _request_id.get()


def set_user_id(user_id: str) -> None:
    _user_id.set(user_id)


def get_user_id() -> str:
    return _user_id.get()


def clear_context() -> None:
    _bank_id.set("-")
    _request_id.set("-")
    _user_id.set("-")
