import time

import pytest
from sqlmodel import Session

import check_db
import create_admin
from studentrecords import repositories
from studentrecords.config import Settings
from studentrecords.database import build_engine
from studentrecords.utils.rate_limit import LoginThrottle


def test_default_secret_rejected_outside_dev(monkeypatch):
    monkeypatch.setenv('ENV', 'prod')
    monkeypatch.delenv('JWT_SECRET', raising=False)
    monkeypatch.delenv('ALLOW_INSECURE_JWT', raising=False)
    with pytest.raises(RuntimeError):
        Settings()
    monkeypatch.setenv('JWT_SECRET', 'a-real-secret')
    assert Settings().JWT_SECRET == 'a-real-secret'


def test_token_lifetime_defaults_to_two_hours(monkeypatch):
    monkeypatch.delenv('JWT_EXPIRE_HOURS', raising=False)
    assert Settings().JWT_EXPIRE_HOURS == 2


def test_login_throttle_blocks_and_resets():
    throttle = LoginThrottle()
    for _ in range(3):
        throttle.record_failure('10.0.0.1')
    allowed, retry_after = throttle.check('10.0.0.1', 3, 60)
    assert not allowed and retry_after >= 1
    assert throttle.check('10.0.0.2', 3, 60) == (True, 0)
    throttle.reset('10.0.0.1')
    assert throttle.check('10.0.0.1', 3, 60) == (True, 0)


def test_create_admin_script(tmp_path, capsys):
    url = f"sqlite:///{tmp_path / 'admin.db'}"
    assert create_admin.main('registrar', 'pw', url) == 0
    assert create_admin.main('registrar', 'pw', url) == 1
    assert 'Admin already exists' in capsys.readouterr().out
    engine = build_engine(url)
    with Session(engine) as session:
        assert repositories.AdminRepository(session).get_by_username('registrar') is not None
    engine.dispose()


def test_check_db_script(tmp_path, capsys):
    assert check_db.main(f"sqlite:///{tmp_path / 'ping.db'}") == 0
    assert 'DB connected at' in capsys.readouterr().out


def test_login_throttle_forgets_keys_without_failures():
    throttle = LoginThrottle()
    for i in range(50):
        assert throttle.check(f'10.0.1.{i}', 3, 60) == (True, 0)
    assert throttle.tracked_keys() == 0
    throttle.record_failure('10.0.0.9')
    assert throttle.tracked_keys() == 1
    time.sleep(0.01)
    # a zero-length window expires every recorded failure
    assert throttle.check('10.0.0.9', 3, 0) == (True, 0)
    assert throttle.tracked_keys() == 0
