from pydantic import BaseModel


# --- Validation ---

class FieldError(BaseModel):
    field: str
    message: str


class UsernamePasswordInput(BaseModel):
    username: str
    email: str
    password: str


# --- Posts ---

class PostInput(BaseModel):
    title: str
    text: str
