import json

import pytest
from pydantic import ValidationError

from automaton_core import Profile, get_profile, load_profile, set_profile
from automaton_core import config


def test_defaults():
    profile = Profile()
    assert profile.accept_by_final_state is True
    assert profile.accept_by_halting is False
    assert profile.max_rounds == 500


def test_an_acceptance_mode_is_required():
    with pytest.raises(ValidationError):
        Profile(accept_by_final_state=False, accept_by_halting=False)


def test_max_rounds_must_be_positive():
    with pytest.raises(ValidationError):
        Profile(max_rounds=0)


def test_load_profile(tmp_path):
    path = tmp_path / "profile.json"
    path.write_text(json.dumps({"accept_by_halting": True, "max_rounds": 20}), encoding="utf-8")
    profile = load_profile(path)
    assert profile.accept_by_halting is True
    assert profile.accept_by_final_state is True
    assert profile.max_rounds == 20


def test_packaged_profile_is_the_default():
    profile = get_profile()
    assert profile == Profile()
    assert get_profile() is profile


def test_set_profile():
    custom = Profile(accept_by_halting=True, accept_by_final_state=False)
    set_profile(custom)
    assert get_profile() is custom


def test_missing_profile_file_falls_back_to_defaults(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DEFAULT_PROFILE_PATH", tmp_path / "missing.json")
    assert get_profile() == Profile()
