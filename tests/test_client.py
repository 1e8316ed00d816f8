"""Tests for the Concourse client handle."""

from pathlib import Path
from unittest.mock import patch

import pytest

from concourse import Concourse, connect
from concourse.exceptions import (
    AuthenticationError,
    ConnectionError,
    InvalidArgumentError,
    RemoteError,
    TransactionError,
)
from concourse.protocol.rpc import RPCError

from tests.conftest import ACCESS_TOKEN, TEST_ENVIRONMENT, TRANSACTION_TOKEN, FakeConnection


class TestConnect:
    """Tests for session establishment."""

    def test_login_on_connect(self, connection: FakeConnection) -> None:
        """Connecting logs in with the resolved credentials."""
        client = Concourse.connect("db.example", 1818, "jeff", "secret", "prod", connection=connection)

        assert connection.calls[0].method == "login"
        assert connection.calls[0].params == ["jeff", "secret", "prod"]
        assert client.is_connected
        assert client.host == "db.example"
        assert client.port == 1818
        assert client.username == "jeff"
        assert client.environment == "prod"

    def test_defaults(self, connection: FakeConnection) -> None:
        """Unspecified parameters fall back to the defaults."""
        client = connect(connection=connection)

        assert client.host == "localhost"
        assert client.port == 1717
        assert connection.calls[0].params == ["admin", "admin", ""]

    def test_keyed_options_override_positional(self, connection: FakeConnection) -> None:
        """Keyed connection options win over positional arguments."""
        client = Concourse.connect("positional", 1, "pos", "pos", "pos", user="kuser", pword="kpass", connection=connection)

        assert client.host == "positional"
        assert connection.calls[0].params == ["kuser", "kpass", "pos"]

    def test_options_mapping(self, connection: FakeConnection) -> None:
        """A mapping can carry every connection option."""
        client = Concourse.connect({"host": "mapped", "environment": "staging", "connection": connection})

        assert client.host == "mapped"
        assert client.environment == "staging"

    def test_prefs_override_keyed_options(self, connection: FakeConnection, tmp_path: Path) -> None:
        """Preferences file settings win over keyed options."""
        prefs = tmp_path / "concourse_client.prefs"
        prefs.write_text("host = from-prefs\nport = 2020\nusername = puser\n")

        client = Concourse.connect(host="keyed", port=1, username="kuser", prefs=str(prefs), connection=connection)

        assert client.host == "from-prefs"
        assert client.port == 2020
        assert connection.calls[0].params[0] == "puser"

    def test_connection_failure(self) -> None:
        """Transport errors at construction become a connection error."""
        failing = FakeConnection(errors={"login": ConnectionError("refused")})

        with pytest.raises(ConnectionError, match="Could not connect to the Concourse Server at localhost:1717"):
            Concourse.connect(connection=failing)
        assert failing.closed

    def test_connect_failure_before_login(self) -> None:
        """A transport that cannot open never reaches login."""
        failing = FakeConnection(errors={"connect": ConnectionError("refused")})

        with pytest.raises(ConnectionError, match="Could not connect"):
            Concourse.connect(connection=failing)
        assert failing.calls == []

    def test_rejected_credentials(self) -> None:
        """A login error from the server is an authentication error."""
        rejecting = FakeConnection(errors={"login": RPCError(code=401, message="Invalid username/password")})

        with pytest.raises(AuthenticationError, match="Invalid username/password") as exc_info:
            Concourse.connect(connection=rejecting)
        assert exc_info.value.code == 401

    def test_invalid_protocol(self) -> None:
        """Only json and cbor are supported."""
        with pytest.raises(ValueError, match="Invalid protocol"):
            Concourse.connect(protocol="xml")


class TestSessionParameters:
    """Every remote call carries the session parameters."""

    def test_credentials_transaction_and_environment_appended(
        self, concourse: Concourse, connection: FakeConnection
    ) -> None:
        """Access token, transaction token and environment end every call."""
        concourse.add("name", "Jeff", 1)

        assert connection.last.method == "addKeyValueRecord"
        assert connection.last.params == ["name", "Jeff", 1, ACCESS_TOKEN, None, TEST_ENVIRONMENT]

    def test_read_calls_carry_session(self, concourse: Concourse, connection: FakeConnection) -> None:
        """Reads carry the session parameters too."""
        concourse.browse("name")
        concourse.time()

        assert connection.calls[-2].params == ["name", ACCESS_TOKEN, None, TEST_ENVIRONMENT]
        assert connection.calls[-1].params == [ACCESS_TOKEN, None, TEST_ENVIRONMENT]


class TestKeyedOptionPrecedence:
    """Keyed options override positional arguments for every operation."""

    def test_add(self, concourse: Concourse, connection: FakeConnection) -> None:
        """add: record option beats positional records."""
        concourse.add("name", "Jeff", 1, record=2)
        assert connection.last.params[:3] == ["name", "Jeff", 2]

    def test_add_options_mapping(self, concourse: Concourse, connection: FakeConnection) -> None:
        """add accepts a mapping of options."""
        concourse.add({"key": "name", "value": "Jeff", "records": [1, 2]})
        assert connection.last.method == "addKeyValueRecords"
        assert connection.last.params[:3] == ["name", "Jeff", [1, 2]]

    def test_set(self, concourse: Concourse, connection: FakeConnection) -> None:
        """set: record option beats positional records."""
        concourse.set("age", 30, [1, 2], record=3)
        assert connection.last.method == "setKeyValueRecord"
        assert connection.last.params[:3] == ["age", 30, 3]

    def test_audit(self, concourse: Concourse, connection: FakeConnection) -> None:
        """audit: the time alias supplies the start timestamp."""
        concourse.audit("name", 1, 100, time="yesterday")
        assert connection.last.method == "auditKeyRecordStartstr"
        assert connection.last.params[:3] == ["name", 1, "yesterday"]

    def test_browse(self, concourse: Concourse, connection: FakeConnection) -> None:
        """browse: the ts alias beats the positional timestamp."""
        concourse.browse("name", 100, ts=200)
        assert connection.last.method == "browseKeyTime"
        assert connection.last.params[:2] == ["name", 200]

    def test_get(self, concourse: Concourse, connection: FakeConnection) -> None:
        """get: key, where and time aliases are recognized."""
        concourse.get("ignored", key="name", where="age > 30", time=5)
        assert connection.last.method == "getKeyCclTime"
        assert connection.last.params[:3] == ["name", "age > 30", 5]

    def test_select(self, concourse: Concourse, connection: FakeConnection) -> None:
        """select: record alias routes without keys."""
        concourse.select(record=4)
        assert connection.last.method == "selectRecord"

    def test_time(self, concourse: Concourse, connection: FakeConnection) -> None:
        """time: phrase option is routed to timePhrase."""
        concourse.time(phrase="last week")
        assert connection.last.method == "timePhrase"
        assert connection.last.params[0] == "last week"

    def test_remove(self, concourse: Concourse, connection: FakeConnection) -> None:
        """remove: records option beats positional record."""
        concourse.remove("name", "Jeff", 1, records=[2, 3])
        assert connection.last.method == "removeKeyValueRecords"
        assert connection.last.params[:3] == ["name", "Jeff", [2, 3]]

    def test_clear(self, concourse: Concourse, connection: FakeConnection) -> None:
        """clear: key and record options beat positional arguments."""
        concourse.clear(["name", "age"], [1, 2], key="name", record=3)
        assert connection.last.method == "clearKeyRecord"
        assert connection.last.params[:2] == ["name", 3]

    def test_find(self, concourse: Concourse, connection: FakeConnection) -> None:
        """find: the ccl alias beats positional criteria."""
        concourse.find("age > 1", ccl="age > 30")
        assert connection.last.method == "findCcl"
        assert connection.last.params[0] == "age > 30"

    def test_get_positional_record(self, concourse: Concourse, connection: FakeConnection) -> None:
        """get: a record id in the second position is the record."""
        concourse.get("name", 1)
        assert connection.last.method == "getKeyRecord"
        assert connection.last.params[:2] == ["name", 1]

    def test_get_positional_record_overridden(self, concourse: Concourse, connection: FakeConnection) -> None:
        """get: a record option beats a positional record."""
        concourse.get("name", 1, record=2)
        assert connection.last.params[:2] == ["name", 2]

    def test_select_positional_records(self, concourse: Concourse, connection: FakeConnection) -> None:
        """select: record ids in the second position are the records."""
        concourse.select(["name", "age"], [1, 2], time="yesterday")
        assert connection.last.method == "selectKeysRecordsTimestr"
        assert connection.last.params[:3] == [["name", "age"], [1, 2], "yesterday"]

    def test_timeout_none(self, connection: FakeConnection) -> None:
        """timeout=None means the default timeout."""
        with patch("concourse.client.HTTPConnection", return_value=connection) as http:
            client = Concourse.connect(timeout=None)

        assert client.is_connected
        assert http.call_args.kwargs["timeout"] == 30.0


class TestInvalidArguments:
    """Missing arguments fail locally without a remote call."""

    def test_add_without_key(self, concourse: Concourse, connection: FakeConnection) -> None:
        """add with no key raises before any call."""
        calls_before = len(connection.calls)

        with pytest.raises(InvalidArgumentError):
            concourse.add(value="Jeff", record=1)
        assert len(connection.calls) == calls_before

    def test_audit_without_record(self, concourse: Concourse, connection: FakeConnection) -> None:
        """audit with no record raises before any call."""
        calls_before = len(connection.calls)

        with pytest.raises(InvalidArgumentError, match="record"):
            concourse.audit("name")
        assert len(connection.calls) == calls_before

    def test_get_without_target(self, concourse: Concourse, connection: FakeConnection) -> None:
        """get with neither criteria nor records raises."""
        with pytest.raises(InvalidArgumentError):
            concourse.get("name")
        assert connection.methods == ["login"]


class TestResults:
    """Tests for result handling."""

    def test_add_returns_new_record(self, connection: FakeConnection) -> None:
        """add without records returns the new record id."""
        connection.results["addKeyValue"] = 1001
        client = Concourse.connect(connection=connection)

        assert client.add("name", "Jeff") == 1001

    def test_audit_keys_are_integers(self, connection: FakeConnection) -> None:
        """Audit timestamps are restored to integers."""
        connection.results["auditRecord"] = {"100": "ADD name AS Jeff IN 1"}
        client = Concourse.connect(connection=connection)

        assert client.audit(1) == {100: "ADD name AS Jeff IN 1"}

    def test_remote_error_propagates(self, connection: FakeConnection) -> None:
        """Server errors reach the caller as RemoteError."""
        connection.errors["findCcl"] = RPCError(code=400, message="Syntax error")
        client = Concourse.connect(connection=connection)

        with pytest.raises(RemoteError, match="Syntax error") as exc_info:
            client.find("age >")
        assert exc_info.value.method == "findCcl"


class TestTransactions:
    """Tests for staging, committing and aborting."""

    def test_abort_without_transaction_is_noop(self, concourse: Concourse, connection: FakeConnection) -> None:
        """abort() with nothing staged sends nothing."""
        concourse.abort()

        assert connection.methods == ["login"]
        assert not concourse.in_transaction

    def test_stage_then_write_uses_token(self, concourse: Concourse, connection: FakeConnection) -> None:
        """Writes after stage() carry the transaction token."""
        concourse.stage()
        concourse.set("age", 30, 1)

        assert concourse.in_transaction
        assert connection.calls[1].params == [ACCESS_TOKEN, TEST_ENVIRONMENT]
        assert connection.last.params[-2] == TRANSACTION_TOKEN

    def test_abort_reverts_to_autocommit(self, concourse: Concourse, connection: FakeConnection) -> None:
        """abort() clears the token and later calls commit immediately."""
        concourse.stage()
        concourse.abort()
        concourse.set("age", 30, 1)

        assert connection.methods == ["login", "stage", "abort", "setKeyValueRecord"]
        assert connection.calls[2].params == [ACCESS_TOKEN, TRANSACTION_TOKEN, TEST_ENVIRONMENT]
        assert connection.last.params[-2] is None
        assert not concourse.in_transaction

    def test_commit_clears_token(self, concourse: Concourse, connection: FakeConnection) -> None:
        """commit() sends the token and returns to autocommit."""
        concourse.stage()

        assert concourse.commit() is True
        assert connection.last.method == "commit"
        assert connection.last.params == [ACCESS_TOKEN, TRANSACTION_TOKEN, TEST_ENVIRONMENT]
        assert not concourse.in_transaction

    def test_commit_without_transaction(self, concourse: Concourse, connection: FakeConnection) -> None:
        """commit() with nothing staged returns False without a call."""
        assert concourse.commit() is False
        assert connection.methods == ["login"]

    def test_nested_stage_raises(self, concourse: Concourse) -> None:
        """Only one transaction may be staged at a time."""
        concourse.stage()

        with pytest.raises(TransactionError, match="already active"):
            concourse.stage()


class TestLogout:
    """Tests for session teardown."""

    def test_logout(self, concourse: Concourse, connection: FakeConnection) -> None:
        """logout tells the server and closes the transport."""
        concourse.logout()

        assert connection.last.method == "logout"
        assert connection.last.params == [ACCESS_TOKEN, TEST_ENVIRONMENT]
        assert connection.closed
        assert not concourse.is_connected

    def test_logout_aborts_staged_transaction(self, concourse: Concourse, connection: FakeConnection) -> None:
        """A staged transaction is aborted on logout."""
        concourse.stage()
        concourse.exit()

        assert connection.methods[-2:] == ["abort", "logout"]

    def test_logout_twice(self, concourse: Concourse, connection: FakeConnection) -> None:
        """A second logout does nothing."""
        concourse.logout()
        concourse.close()

        assert connection.methods.count("logout") == 1

    def test_calls_after_logout_raise(self, concourse: Concourse) -> None:
        """The session is gone after logout."""
        concourse.logout()

        with pytest.raises(ConnectionError, match="logged out"):
            concourse.time()

    def test_context_manager(self, connection: FakeConnection) -> None:
        """The handle logs out when the with-block ends."""
        with Concourse.connect(connection=connection) as client:
            client.time()

        assert connection.methods == ["login", "time", "logout"]
