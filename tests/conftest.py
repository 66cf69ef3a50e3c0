"""
Shared test fixtures for TeacherDash.
An in-memory stand-in for the Supabase client and a scripted AI provider.
Zero network calls.
"""
import re
import copy
import pytest

from teacherdash.services.ai_service import AIProvider


# ══════════════════════════════════════════════════════════════
# FAKE SUPABASE
# ══════════════════════════════════════════════════════════════

class FakeResult:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


def _sort_key(value):
    # (is_null, value) keeps mixed None/values comparable
    return (value is None, value if value is not None else 0)


def _like(pattern):
    parts = [re.escape(p) for p in pattern.split('%')]
    return re.compile('^' + '.*'.join(parts) + '$', re.IGNORECASE | re.DOTALL)


class _Negated:
    """``query.not_.<filter>(...)`` inverts the next filter."""

    def __init__(self, query):
        self._query = query

    def __getattr__(self, name):
        method = getattr(self._query, name)

        def negated(*args, **kwargs):
            self._query._negate_next = True
            return method(*args, **kwargs)
        return negated


class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = None
        self.payload = None
        self.on_conflict = None
        self.ignore_duplicates = False
        self.filters = []
        self.orders = []
        self.limit_n = None
        self.count_mode = None
        self.single_mode = None
        self._negate_next = False

    # ── operations ──

    def select(self, columns='*', count=None):
        if self.op is None:
            self.op = 'select'
        self.count_mode = count
        return self

    def insert(self, rows):
        self.op = 'insert'
        self.payload = rows
        return self

    def update(self, values):
        self.op = 'update'
        self.payload = values
        return self

    def upsert(self, rows, on_conflict=None, ignore_duplicates=False):
        self.op = 'upsert'
        self.payload = rows
        self.on_conflict = on_conflict
        self.ignore_duplicates = ignore_duplicates
        return self

    def delete(self):
        self.op = 'delete'
        return self

    # ── filters ──

    def _filter(self, predicate):
        if self._negate_next:
            self._negate_next = False
            self.filters.append(lambda row: not predicate(row))
        else:
            self.filters.append(predicate)
        return self

    @property
    def not_(self):
        return _Negated(self)

    def eq(self, column, value):
        return self._filter(lambda row: row.get(column) == value)

    def neq(self, column, value):
        return self._filter(lambda row: row.get(column) != value)

    def gt(self, column, value):
        return self._filter(lambda row: row.get(column) is not None and row[column] > value)

    def gte(self, column, value):
        return self._filter(lambda row: row.get(column) is not None and row[column] >= value)

    def lt(self, column, value):
        return self._filter(lambda row: row.get(column) is not None and row[column] < value)

    def lte(self, column, value):
        return self._filter(lambda row: row.get(column) is not None and row[column] <= value)

    def in_(self, column, values):
        values = list(values)
        return self._filter(lambda row: row.get(column) in values)

    def is_(self, column, value):
        if value in (None, 'null'):
            return self._filter(lambda row: row.get(column) is None)
        return self._filter(lambda row: row.get(column) is value)

    def ilike(self, column, pattern):
        regex = _like(pattern)
        return self._filter(lambda row: row.get(column) is not None and bool(regex.match(str(row[column]))))

    def order(self, column, desc=False):
        self.orders.append((column, desc))
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    def single(self):
        self.single_mode = 'single'
        return self

    def maybe_single(self):
        self.single_mode = 'maybe'
        return self

    # ── execution ──

    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def execute(self):
        rows = self.db.tables.setdefault(self.table, [])
        self.db.calls.append((self.table, self.op))

        if self.op == 'insert':
            data = [self.db.add_row(self.table, r) for r in _as_list(self.payload)]
            return FakeResult(copy.deepcopy(data))

        if self.op == 'upsert':
            data = [self._upsert_one(rows, r) for r in _as_list(self.payload)]
            return FakeResult(copy.deepcopy([r for r in data if r is not None]))

        matched = [r for r in rows if self._matches(r)]

        if self.op == 'update':
            for r in matched:
                r.update(copy.deepcopy(self.payload))
            return FakeResult(copy.deepcopy(matched))

        if self.op == 'delete':
            self.db.tables[self.table] = [r for r in rows if not self._matches(r)]
            return FakeResult(copy.deepcopy(matched))

        for column, desc in reversed(self.orders):
            if desc:
                # Postgres: DESC puts nulls first
                matched.sort(key=lambda r: _sort_key(r.get(column)), reverse=True)
            else:
                matched.sort(key=lambda r: _sort_key(r.get(column)))

        count = len(matched) if self.count_mode else None
        if self.limit_n is not None:
            matched = matched[:self.limit_n]
        data = copy.deepcopy(matched)

        if self.single_mode:
            if not data and self.single_mode == 'single':
                raise RuntimeError("JSON object requested, multiple (or no) rows returned")
            return FakeResult(data[0] if data else None, count)
        return FakeResult(data, count)

    def _upsert_one(self, rows, row):
        keys = [k.strip() for k in (self.on_conflict or 'id').split(',')]
        for existing in rows:
            if all(existing.get(k) == row.get(k) for k in keys):
                if self.ignore_duplicates:
                    return None
                existing.update(copy.deepcopy(row))
                return existing
        return self.db.add_row(self.table, row)


def _as_list(rows):
    return rows if isinstance(rows, list) else [rows]


class FakeBucket:
    def __init__(self, storage, name):
        self.storage = storage
        self.name = name

    def upload(self, path, data, file_options=None):
        self.storage.files[(self.name, path)] = data
        return {"path": path}

    def get_public_url(self, path):
        return f"https://fake.supabase.co/storage/v1/object/public/{self.name}/{path}"

    def remove(self, paths):
        for path in paths:
            self.storage.files.pop((self.name, path), None)
        self.storage.removed.extend(paths)
        return paths


class FakeStorage:
    def __init__(self):
        self.files = {}
        self.removed = []

    def from_(self, bucket):
        return FakeBucket(self, bucket)


class FakeSupabase:
    """Enough of the supabase-py client for the app's queries."""

    def __init__(self):
        self.tables = {}
        self.calls = []
        self.storage = FakeStorage()
        self._ids = {}
        self._clock = 0

    def table(self, name):
        return FakeQuery(self, name)

    def add_row(self, table, row):
        row = copy.deepcopy(row)
        if row.get('id') is None and table not in ('settings', 'classroom_profiles'):
            self._ids[table] = max(
                [self._ids.get(table, 0)] + [r.get('id') or 0 for r in self.tables.get(table, [])]
            ) + 1
            row['id'] = self._ids[table]
        self._clock += 1
        stamp = f"2026-01-01T00:00:00.{self._clock:06d}+00:00"
        row.setdefault('created_at', stamp)
        if table == 'media_library':
            row.setdefault('uploaded_at', stamp)
        self.tables.setdefault(table, []).append(row)
        return row

    def seed(self, table, rows):
        """Insert fixture rows and return them (ids assigned)."""
        return [copy.deepcopy(self.add_row(table, r)) for r in rows]

    def rows(self, table):
        return self.tables.get(table, [])


# ══════════════════════════════════════════════════════════════
# FAKE AI PROVIDER
# ══════════════════════════════════════════════════════════════

class FakeProvider(AIProvider):
    """Returns queued responses in order; queued exceptions are raised."""

    name = 'fake'

    def __init__(self):
        super().__init__('test-key', 'fake-model')
        self.responses = []
        self.calls = []

    def queue(self, *responses):
        self.responses.extend(responses)
        return self

    def _next(self):
        if not self.responses:
            raise AssertionError("FakeProvider ran out of queued responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def chat(self, system_prompt, messages, options):
        self.calls.append({"system": system_prompt, "messages": messages, "options": options})
        return self._next()

    def generate_with_attachment(self, system_prompt, user_prompt, data, mime_type, options):
        self.calls.append({
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
            "options": options,
            "mime_type": mime_type,
        })
        return self._next()


# ══════════════════════════════════════════════════════════════
# FIXTURES
# ══════════════════════════════════════════════════════════════

@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def app(fake_db, fake_provider, monkeypatch):
    """App wired to the fake client with the provider factory patched out."""
    import teacherdash.services.ai_service as ai_service
    from teacherdash.app import create_app

    monkeypatch.setattr(ai_service, 'get_provider', lambda ai_config: fake_provider)
    monkeypatch.setattr(ai_service.time, 'sleep', lambda seconds: None)

    app = create_app(supabase_client=fake_db, testing=True)
    app.config['REQUIRE_AUTH'] = False
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def classes(fake_db):
    return fake_db.seed('classes', [
        {"name": "English-1", "periods": "4th and 6th", "color": "#4ECDC4"},
        {"name": "English-2", "periods": "1st, 3rd, and 5th", "color": "#6C8EBF"},
        {"name": "French-1", "periods": "", "color": "#E8A87C"},
    ])
