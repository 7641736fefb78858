"""
Bootstrap and CLI tests.
"""

from tablepos.services import auth_service, bootstrap_service, configuration_service
from tablepos.services.products_service import list_products, list_tables


class TestBootstrap:

    def test_seeds_reference_data(self, db_session):
        result = bootstrap_service.bootstrap()

        assert result["configuration"] is True
        assert result["tables"] == len(bootstrap_service.DEFAULT_TABLES)
        assert result["products"] == len(bootstrap_service.DEFAULT_PRODUCTS)
        assert result["users"] == len(bootstrap_service.DEFAULT_USERS)

        assert [t["number"] for t in list_tables()][:3] == ["1", "2", "3"]
        assert list_products()[0]["price"] == "28000.00"
        assert auth_service.authenticate("admin@tablepos.local", bootstrap_service.DEFAULT_PASSWORD)["role"] == "admin"

    def test_is_idempotent(self, db_session):
        bootstrap_service.bootstrap(include_users=False)
        configuration_service.update_configuration({"restaurantName": "La Esquina"})

        second = bootstrap_service.bootstrap(include_users=False)

        assert second == {"configuration": False, "tables": 0, "products": 0, "users": 0}
        assert configuration_service.get_configuration()["restaurantName"] == "La Esquina"


class TestCli:

    def test_system_init(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "init", "--no-users"])

        assert result.exit_code == 0
        assert "PASS Tables created: 12" in result.output
        assert auth_service.list_users() == []

    def test_users_create_and_list(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create",
            "--email", "ana@tablepos.local",
            "--name", "Ana",
            "--password", "Password123!",
            "--role", "cashier",
        ])
        assert result.exit_code == 0
        assert "PASS Created user: ana@tablepos.local" in result.output

        listing = runner.invoke(args=["users", "list"])
        assert "ana@tablepos.local" in listing.output

    def test_users_create_weak_password(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create", "--email", "x@tablepos.local", "--password", "weak", "--role", "cashier",
        ])
        assert "FAIL Password validation failed" in result.output

    def test_repair_check(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["repair", "check"])
        assert result.exit_code == 0
        assert "consistent" in result.output
