import unittest

from fastapi.testclient import TestClient

from fakes import FakeCatalog, catalog_items
from watchhive.dependencies import get_catalog_client
from watchhive.main import app


class ApiTestCase(unittest.TestCase):
    """Runs the real app (lifespan included) against the test database.

    The catalog is replaced by a FakeCatalog; users get unique names so tests
    never collide in the shared database.
    """

    def setUp(self) -> None:
        self.catalog = FakeCatalog(trending=catalog_items(range(100, 120), prefix="Trending"))
        app.dependency_overrides[get_catalog_client] = lambda: self.catalog
        self.client = TestClient(app)
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)

    def tearDown(self) -> None:
        app.dependency_overrides = {}
