import paramiko
import pytest

from inventory_push.errors import SSHConnectionError
from inventory_push.remote import ssh as ssh_mod
from inventory_push.remote.ssh import SSHClient


class _Paramiko:
    """Records what the wrapper asks of paramiko.SSHClient."""

    instances = []
    fail_with = None

    def __init__(self):
        self.policy = None
        self.connect_kwargs = None
        self.closed = False
        _Paramiko.instances.append(self)

    def load_system_host_keys(self):
        pass

    def set_missing_host_key_policy(self, policy):
        self.policy = policy

    def connect(self, **kwargs):
        self.connect_kwargs = kwargs
        if _Paramiko.fail_with is not None:
            raise _Paramiko.fail_with

    def open_sftp(self):
        return "sftp-session"

    def close(self):
        self.closed = True


@pytest.fixture
def fake_paramiko(monkeypatch):
    _Paramiko.instances = []
    _Paramiko.fail_with = None
    monkeypatch.setattr(ssh_mod.paramiko, "SSHClient", _Paramiko)
    return _Paramiko


def test_password_login_disables_key_probing(fake_paramiko):
    with SSHClient("h", "u", password="pw", port=2222, timeout=5) as cli:
        assert cli.open_sftp() == "sftp-session"
    inst = fake_paramiko.instances[0]
    assert inst.connect_kwargs["password"] == "pw"
    assert inst.connect_kwargs["port"] == 2222
    assert inst.connect_kwargs["timeout"] == 5
    assert inst.connect_kwargs["look_for_keys"] is False
    assert inst.connect_kwargs["allow_agent"] is False
    assert isinstance(inst.policy, paramiko.AutoAddPolicy)
    assert inst.closed


def test_no_credentials_uses_agent_and_default_keys(fake_paramiko):
    with SSHClient("h", "u"):
        pass
    kw = fake_paramiko.instances[0].connect_kwargs
    assert kw["look_for_keys"] is True and kw["allow_agent"] is True


def test_strict_host_keys_rejects_unknown_hosts(fake_paramiko):
    with SSHClient("h", "u", key_path="/k", strict_host_keys=True):
        pass
    inst = fake_paramiko.instances[0]
    assert isinstance(inst.policy, paramiko.RejectPolicy)
    assert inst.connect_kwargs["key_filename"] == "/k"


@pytest.mark.parametrize(
    "exc,match",
    [
        (paramiko.AuthenticationException("bad password"), "authentication failed"),
        (paramiko.SSHException("banner"), "cannot connect"),
        (OSError(111, "Connection refused"), "cannot connect"),
    ],
)
def test_connect_failures_become_connection_errors(fake_paramiko, exc, match):
    fake_paramiko.fail_with = exc
    with pytest.raises(SSHConnectionError, match=match):
        with SSHClient("h", "u", password="pw"):
            pass
    assert fake_paramiko.instances[0].closed
