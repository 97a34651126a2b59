from fastapi import Header

DEFAULT_OPERATOR = "system"


async def get_operator(x_operator: str | None = Header(default=None)) -> str:
    if not x_operator or not x_operator.strip():
        return DEFAULT_OPERATOR
    return x_operator.strip()
