"""Users — a page plus an XMLHttpRequest API mounted as a sub-router.

Demonstrates named filters with results (``is:logged`` returns the user
name), a sub-router mounted behind ``is:logged is:ajax``, handler
parameters resolved from the shared store, and ``_method`` overrides so
a plain POST can update or delete.

Run:
    uvicorn app:app
"""

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from deputy import App, AppConfig, NotFound, Router

TEMPLATES_DIR = Path(__file__).parent / "templates"


@dataclass(frozen=True, slots=True)
class User:
    id: int
    name: str
    emailaddress: str


class UserStore:
    """In-memory users table."""

    def __init__(self) -> None:
        self._rows: dict[int, User] = {}
        self._next_id = 1

    def all(self) -> list[dict[str, Any]]:
        return [asdict(user) for user in self._rows.values()]

    def get(self, user_id: str) -> dict[str, Any]:
        user = self._rows.get(_to_id(user_id))
        if user is None:
            raise NotFound(f"No user {user_id}")
        return asdict(user)

    def create(self, fields: dict[str, Any]) -> User:
        user = User(self._next_id, fields.get("name", ""), fields.get("emailaddress", ""))
        self._rows[user.id] = user
        self._next_id += 1
        return user

    def update(self, user_id: str, fields: dict[str, Any]) -> None:
        current = self.get(user_id)
        known = {k: v for k, v in fields.items() if k in ("name", "emailaddress")}
        self._rows[current["id"]] = User(**{**current, **known})

    def delete(self, user_id: str) -> None:
        self.get(user_id)
        del self._rows[_to_id(user_id)]


def _to_id(user_id: str) -> int:
    try:
        return int(user_id)
    except ValueError:
        raise NotFound(f"No user {user_id}") from None


users = UserStore()
users.create({"name": "Yoda", "emailaddress": "yoda@dagobah.example"})
users.create({"name": "Luke", "emailaddress": "luke@tatooine.example"})

app = App(AppConfig(template_dir=TEMPLATES_DIR), store={"users": users})


@app.filter("is:logged")
def current_user(server):
    # Stand-in for a real session lookup
    return server("HTTP_X_USER", "Yoda")


# ---------------------------------------------------------------------------
# XMLHttpRequest API
# ---------------------------------------------------------------------------

ajax = Router()


@ajax.get("/users")
def list_users(json, users):
    return json(users.all())


@ajax.get("/users/<id>")
def show_user(json, users, id):
    return json(users.get(id))


@ajax.delete("/users/<id>")
def delete_user(json, users, id):
    users.delete(id)
    return json(True)


@ajax.put("/users/<id>")
def update_user(json, users, id, post):
    users.update(id, dict(post()))
    return json(True)


@ajax.put("/users")
def create_user(json, users, post):
    user = users.create(dict(post()))
    return json({"id": user.id}, status=201)


app.mount("/ajax", ajax, "is:logged is:ajax")


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------


@app.get("/", "is:logged")
def index(render, logged):
    return render("index.html", current_user_name=logged)
