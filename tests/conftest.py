import json
from datetime import datetime, timezone
from pathlib import Path

import pytest


TS_FILES = {
    "package.json": json.dumps(
        {
            "name": "sample-api",
            "version": "1.0.0",
            "scripts": {"test": "jest", "build": "tsc"},
            "dependencies": {"express": "^4.18.0", "lodash": "4.17.15", "moment": "2.29.1"},
            "devDependencies": {"jest": "^29.0.0", "typescript": "^5.0.0"},
        },
        indent=2,
    ),
    "src/models/user.model.ts": """export interface User {
    id: string;
    name: string;
}
""",
    "src/services/user.service.ts": """import _ from 'lodash';
import { User } from '../models/user.model';

export class UserService {
    private users: User[] = [];

    findAll(): User[] {
        return _.cloneDeep(this.users);
    }

    add(user: User): void {
        this.users.push(user);
    }
}
""",
    "src/routes/user.routes.ts": """import { Router } from 'express';
import { UserService } from '../services/user.service';

const service = new UserService();
export const userRouter = Router();

userRouter.get('/users', (req, res) => {
    res.json(service.findAll());
});
""",
    "tests/user.service.test.ts": """import { UserService } from '../src/services/user.service';

describe('UserService', () => {
    it('returns the users that were added', () => {
        const service = new UserService();
        service.add({ id: '1', name: 'Ada' });
        expect(service.findAll()).toHaveLength(1);
    });
});
""",
}

PY_FILES = {
    "pyproject.toml": """[project]
name = "sample-service"
version = "0.1.0"
dependencies = ["fastapi>=0.110", "pydantic>=2.5", "requests>=2.28.0"]

[project.optional-dependencies]
test = ["pytest>=8.0"]
""",
    "app/__init__.py": "",
    "app/models/__init__.py": "",
    "app/models/user.py": '''"""User model."""

from pydantic import BaseModel


class User(BaseModel):
    id: str
    name: str
''',
    "app/services/__init__.py": "",
    "app/services/user_service.py": '''"""User service."""

from app.models.user import User


class UserService:
    def __init__(self):
        self.users = []

    def add_user(self, user: User) -> None:
        self.users.append(user)

    def list_users(self) -> list:
        return list(self.users)
''',
    "app/routes/__init__.py": "",
    "app/routes/users.py": '''"""User routes."""

from fastapi import APIRouter

from app.services.user_service import UserService

router = APIRouter()
service = UserService()


@router.get("/users")
def list_users() -> list:
    return service.list_users()
''',
    "tests/test_user_service.py": '''from app.models.user import User
from app.services.user_service import UserService


def test_add_user_stores_the_user():
    service = UserService()
    service.add_user(User(id="1", name="Ada"))
    assert service.list_users()[0].name == "Ada"
''',
}


def write_tree(root: Path, files: dict) -> Path:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


class FakeClock:
    """Settable time source for the memory store."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def ts_project(tmp_path) -> Path:
    return write_tree(tmp_path / "ts-project", TS_FILES)


@pytest.fixture
def py_project(tmp_path) -> Path:
    return write_tree(tmp_path / "py-project", PY_FILES)


@pytest.fixture
def memory_dir(tmp_path) -> Path:
    return tmp_path / "memory"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc))
