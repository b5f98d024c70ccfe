from hellotown.sim.config import SimConfig


def test_defaults_match_reference_configuration(monkeypatch):
    for name in ("SIM_IDLE_WEIGHT", "SIM_PROXIMITY", "SIM_VOTING_DURATION_SEC", "SIM_RECIPROCAL_DIALOGUE"):
        monkeypatch.delenv(name, raising=False)

    config = SimConfig.from_env()

    assert config == SimConfig()
    assert config.voting_duration_ms == 300_000


def test_env_values_are_parsed_and_clamped(monkeypatch):
    monkeypatch.setenv("SIM_IDLE_WEIGHT", "3")
    monkeypatch.setenv("SIM_PROXIMITY", "not-a-number")
    monkeypatch.setenv("SIM_RECIPROCAL_DIALOGUE", "off")
    monkeypatch.setenv("SIM_VOTING_DURATION_SEC", "60")

    config = SimConfig.from_env()

    assert config.idle_weight == 1.0
    assert config.proximity == 80.0
    assert config.reciprocal_dialogue is False
    assert config.voting_duration_ms == 60_000
