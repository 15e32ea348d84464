"""Code and test templates used by the context engine.

Placeholders: {{INTENT}}, {{ARCHITECTURE}}, {{NAMING_CONVENTION}},
{{CLASS_NAME}}, {{FUNCTION_NAME}}, {{MODULE_NAME}}.
"""

import re
from typing import Dict, List, Optional

FILE_TYPES = ('controller', 'service', 'model', 'test', 'middleware', 'route', 'utility')

TYPESCRIPT_TEMPLATES: Dict[str, str] = {
    'controller': '''/**
 * {{INTENT}}
 * Generated controller following {{ARCHITECTURE}} conventions
 * Naming convention: {{NAMING_CONVENTION}}
 */
export class {{CLASS_NAME}}Controller {
    constructor(private readonly service: { execute(input: unknown): Promise<unknown> }) {}

    async {{FUNCTION_NAME}}(req: Request, res: Response, next: NextFunction): Promise<void> {
        try {
            const result = await this.service.execute(req.body);
            res.json({ success: true, data: result });
        } catch (error) {
            next(error);
        }
    }
}
''',
    'service': '''/**
 * {{INTENT}}
 * Business logic service ({{ARCHITECTURE}})
 */
export class {{CLASS_NAME}}Service {
    async execute(input: Record<string, unknown>): Promise<Record<string, unknown>> {
        try {
            return { ...input };
        } catch (error) {
            throw new Error(`{{CLASS_NAME}} failed: ${(error as Error).message}`);
        }
    }
}
''',
    'model': '''/**
 * {{INTENT}}
 * Data model ({{ARCHITECTURE}})
 */
export interface {{CLASS_NAME}} {
    id: string;
    createdAt: Date;
}

export function {{FUNCTION_NAME}}(raw: Record<string, unknown>): {{CLASS_NAME}} {
    try {
        return { id: String(raw.id), createdAt: new Date(String(raw.createdAt)) };
    } catch (error) {
        throw new Error(`Invalid {{CLASS_NAME}}: ${(error as Error).message}`);
    }
}
''',
    'middleware': '''/**
 * {{INTENT}}
 * Middleware ({{ARCHITECTURE}})
 */
export function {{FUNCTION_NAME}}(req: Request, res: Response, next: NextFunction): void {
    try {
        next();
    } catch (error) {
        next(error);
    }
}
''',
    'route': '''/**
 * {{INTENT}}
 * Routes ({{ARCHITECTURE}})
 */
export const {{FUNCTION_NAME}}Router = Router();

{{FUNCTION_NAME}}Router.get('/{{MODULE_NAME}}', async (req: Request, res: Response, next: NextFunction) => {
    try {
        res.json({ success: true });
    } catch (error) {
        next(error);
    }
});
''',
    'utility': '''/**
 * {{INTENT}}
 * Utility helpers ({{ARCHITECTURE}})
 */
export function {{FUNCTION_NAME}}<T>(value: T): T {
    try {
        return value;
    } catch (error) {
        throw new Error(`{{FUNCTION_NAME}} failed: ${(error as Error).message}`);
    }
}
''',
    'test': '''/**
 * {{INTENT}}
 * Test suite ({{ARCHITECTURE}})
 */
describe('{{INTENT}}', () => {
    it('should {{INTENT}}', async () => {
        try {
            // Arrange
            const input = {};

            // Act
            const result = await Promise.resolve(input);

            // Assert
            expect(result).toBeDefined();
        } catch (error) {
            throw error;
        }
    });
});
''',
    'default': '''/**
 * {{INTENT}}
 * Follows {{ARCHITECTURE}} conventions
 * Naming convention: {{NAMING_CONVENTION}}
 */
export class {{CLASS_NAME}} {
    run(): void {
        try {
            return;
        } catch (error) {
            throw error;
        }
    }
}
''',
}

PYTHON_TEMPLATES: Dict[str, str] = {
    'controller': '''"""{{INTENT}}

Generated controller following {{ARCHITECTURE}} conventions.
Naming convention: {{NAMING_CONVENTION}}.
"""

import logging

logger = logging.getLogger(__name__)


class {{CLASS_NAME}}Controller:
    def __init__(self, service):
        self.service = service

    def {{FUNCTION_NAME}}(self, payload: dict) -> dict:
        try:
            return {"success": True, "data": self.service.execute(payload)}
        except Exception as e:
            logger.error("{{CLASS_NAME}} failed: %s", e)
            raise
''',
    'service': '''"""{{INTENT}}

Business logic service ({{ARCHITECTURE}}).
"""

import logging

logger = logging.getLogger(__name__)


class {{CLASS_NAME}}Service:
    def execute(self, params: dict) -> dict:
        try:
            return dict(params)
        except Exception as e:
            logger.error("{{CLASS_NAME}} failed: %s", e)
            raise
''',
    'model': '''"""{{INTENT}}

Data model ({{ARCHITECTURE}}).
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class {{CLASS_NAME}}:
    id: str
    created_at: datetime

    @classmethod
    def {{FUNCTION_NAME}}(cls, raw: dict) -> "{{CLASS_NAME}}":
        try:
            return cls(id=str(raw["id"]), created_at=datetime.fromisoformat(raw["created_at"]))
        except (KeyError, ValueError) as e:
            raise ValueError(f"Invalid {{CLASS_NAME}}: {e}") from e
''',
    'middleware': '''"""{{INTENT}}

Middleware ({{ARCHITECTURE}}).
"""

import logging

logger = logging.getLogger(__name__)


def {{FUNCTION_NAME}}(handler):
    def wrapped(request):
        try:
            return handler(request)
        except Exception as e:
            logger.error("{{FUNCTION_NAME}} caught: %s", e)
            raise
    return wrapped
''',
    'route': '''"""{{INTENT}}

Routes ({{ARCHITECTURE}}).
"""

import logging

logger = logging.getLogger(__name__)


def {{FUNCTION_NAME}}(request: dict) -> dict:
    try:
        return {"success": True}
    except Exception as e:
        logger.error("{{FUNCTION_NAME}} failed: %s", e)
        raise
''',
    'utility': '''"""{{INTENT}}

Utility helpers ({{ARCHITECTURE}}).
"""


def {{FUNCTION_NAME}}(value):
    try:
        return value
    except Exception as e:
        raise ValueError(f"{{FUNCTION_NAME}} failed: {e}") from e
''',
    'test': '''"""{{INTENT}}

Tests ({{ARCHITECTURE}}).
"""

import pytest


def test_{{FUNCTION_NAME}}():
    try:
        # Arrange
        payload = {}

        # Act
        result = dict(payload)

        # Assert
        assert result == {}
    except AssertionError:
        pytest.fail("{{INTENT}} did not hold")
''',
    'default': '''"""{{INTENT}}

Follows {{ARCHITECTURE}} conventions.
Naming convention: {{NAMING_CONVENTION}}.
"""


class {{CLASS_NAME}}:
    def run(self):
        try:
            return None
        except Exception as e:
            raise RuntimeError(f"{{CLASS_NAME}} failed: {e}") from e
''',
}

# framework-specific variants replace the generic template for a file type
FRAMEWORK_TEMPLATES: Dict[tuple, str] = {
    ('python', 'fastapi', 'route'): '''"""{{INTENT}}

Routes ({{ARCHITECTURE}}).
"""

import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/{{MODULE_NAME}}")


@router.get("/")
async def {{FUNCTION_NAME}}() -> dict:
    try:
        return {"success": True}
    except Exception as e:
        logger.error("{{FUNCTION_NAME}} failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e)) from e
''',
    ('python', 'pydantic', 'model'): '''"""{{INTENT}}

Data model ({{ARCHITECTURE}}).
"""

from datetime import datetime


class {{CLASS_NAME}}(BaseModel):
    id: str
    created_at: datetime = Field(default_factory=datetime.now)

    @classmethod
    def {{FUNCTION_NAME}}(cls, raw: dict) -> "{{CLASS_NAME}}":
        try:
            return cls.model_validate(raw)
        except ValueError as e:
            raise ValueError(f"Invalid {{CLASS_NAME}}: {e}") from e
''',
}

FRAMEWORK_IMPORTS: Dict[tuple, List[str]] = {
    ('typescript', 'express', 'controller'): ["import { Request, Response, NextFunction } from 'express';"],
    ('typescript', 'express', 'middleware'): ["import { Request, Response, NextFunction } from 'express';"],
    ('typescript', 'express', 'route'): ["import { Router, Request, Response, NextFunction } from 'express';"],
    ('python', 'fastapi', 'route'): ["from fastapi import APIRouter, HTTPException"],
    ('python', 'pydantic', 'model'): ["from pydantic import BaseModel, Field"],
}

TEST_TEMPLATES: Dict[str, str] = {
    'jest': '''import { {{CLASS_NAME}} } from './{{MODULE_NAME}}';

describe('{{CLASS_NAME}}', () => {
    it('should {{INTENT}}', async () => {
        // Arrange
        const subject = {{CLASS_NAME}};

        // Act
        const result = subject;

        // Assert
        expect(result).toBeDefined();
    });
});
''',
    'vitest': '''import { describe, it, expect } from 'vitest';
import { {{CLASS_NAME}} } from './{{MODULE_NAME}}';

describe('{{CLASS_NAME}}', () => {
    it('should {{INTENT}}', async () => {
        const result = {{CLASS_NAME}};
        expect(result).toBeDefined();
    });
});
''',
    'mocha': '''import { expect } from 'chai';
import { {{CLASS_NAME}} } from './{{MODULE_NAME}}';

describe('{{CLASS_NAME}}', () => {
    it('should {{INTENT}}', async () => {
        const result = {{CLASS_NAME}};
        expect(result).to.exist;
    });
});
''',
    'pytest': '''from {{MODULE_NAME}} import {{CLASS_NAME}}


def test_{{FUNCTION_NAME}}():
    # Arrange
    subject = {{CLASS_NAME}}

    # Act
    result = subject

    # Assert
    assert result is not None
''',
}

# exported symbol the companion test imports, per file type
TEST_SUBJECTS = {
    'controller': '{{CLASS_NAME}}Controller',
    'service': '{{CLASS_NAME}}Service',
    'model': '{{CLASS_NAME}}',
    'middleware': '{{FUNCTION_NAME}}',
    'route': '{{FUNCTION_NAME}}',
    'utility': '{{FUNCTION_NAME}}',
}


def split_words(intent: str) -> List[str]:
    spaced = re.sub(r'([a-z0-9])([A-Z])', r'\1 \2', intent)
    return [w.lower() for w in re.findall(r'[A-Za-z0-9]+', spaced)] or ['generated']


def class_name(intent: str) -> str:
    name = ''.join(w.capitalize() for w in split_words(intent))
    return name if name[0].isalpha() else f'Generated{name}'


def function_name(intent: str, convention: str) -> str:
    words = split_words(intent)
    if convention == 'snake_case':
        name = '_'.join(words)
    else:
        name = words[0] + ''.join(w.capitalize() for w in words[1:])
    return name if name[0].isalpha() else f'generated_{name}' if convention == 'snake_case' else f'generated{name}'


def module_name(intent: str, file_convention: str) -> str:
    words = split_words(intent)
    return '_'.join(words) if file_convention == 'snake_case' else '-'.join(words)


def implementation_template(language: str, file_type: str, framework: Optional[str] = None) -> str:
    if framework and (language, framework, file_type) in FRAMEWORK_TEMPLATES:
        return FRAMEWORK_TEMPLATES[(language, framework, file_type)]
    templates = PYTHON_TEMPLATES if language == 'python' else TYPESCRIPT_TEMPLATES
    return templates.get(file_type, templates['default'])


def companion_test_template(framework: str, language: str) -> str:
    if framework in TEST_TEMPLATES:
        return TEST_TEMPLATES[framework]
    return TEST_TEMPLATES['pytest' if language == 'python' else 'jest']


def render(template: str, values: Dict[str, str]) -> str:
    for key, value in values.items():
        template = template.replace('{{' + key + '}}', value)
    return template
