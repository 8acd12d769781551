from pydantic import BaseModel


class MeOut(BaseModel):
    user_id: str
    email: str
    full_name: str
    roles: list[str]
    employee_id: str | None
