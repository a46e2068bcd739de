import pytest
import yaml
from pydantic import ValidationError

from allowance_gateway.config import GatewayConfig, config_from_env, load_config, save_config

from conftest import TOKEN_ADDRESS


def test_defaults():
    config = GatewayConfig()
    assert config.ledger.network == "sepolia"
    assert config.ledger.resolve_rpc_url() == "https://rpc.sepolia.org"
    assert config.token.decimals == 18
    assert config.server.port == 8050
    assert config.validation.strict_addresses is False


def test_load_config_expands_env_vars(tmp_path, monkeypatch):
    monkeypatch.setenv("APP_SEED", "from-the-env")
    monkeypatch.setenv("TOKEN", TOKEN_ADDRESS)
    path = tmp_path / "gateway.yaml"
    path.write_text(
        "ledger:\n"
        "  network: localhost\n"
        "  rpc_url: http://node:8545\n"
        "token:\n"
        "  address: ${TOKEN}\n"
        "  decimals: 6\n"
        "wallet:\n"
        "  seed: ${APP_SEED}\n",
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.wallet.seed.get_secret_value() == "from-the-env"
    assert config.token.address == TOKEN_ADDRESS
    assert config.token.decimals == 6
    assert config.ledger.resolve_rpc_url() == "http://node:8545"
    assert config.ledger.resolve_chain().chain_id == 31337


def test_unset_env_var_keeps_placeholder(tmp_path, monkeypatch):
    monkeypatch.delenv("APP_SEED", raising=False)
    path = tmp_path / "gateway.yaml"
    path.write_text("wallet:\n  seed: ${APP_SEED}\n", encoding="utf-8")
    assert load_config(path).wallet.seed.get_secret_value() == "${APP_SEED}"


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "gateway.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(path) == GatewayConfig()


def test_config_from_env():
    config = config_from_env(
        {
            "APP_SEED": "s3cret",
            "RPC_URL": "http://127.0.0.1:8545",
            "NETWORK": "localhost",
            "CHAIN_ID": "1337",
            "CONTRACT_ADDRESS": TOKEN_ADDRESS,
            "PORT": "9000",
        }
    )
    assert config.wallet.seed.get_secret_value() == "s3cret"
    assert config.ledger.chain_id == 1337
    assert config.token.address == TOKEN_ADDRESS
    assert config.server.port == 9000


def test_seed_is_not_in_repr():
    config = config_from_env({"APP_SEED": "s3cret"})
    assert "s3cret" not in repr(config)


def test_config_is_immutable():
    config = GatewayConfig()
    with pytest.raises(ValidationError):
        config.server.port = 1


def test_save_config_never_writes_the_seed(tmp_path):
    config = config_from_env({"APP_SEED": "s3cret", "CONTRACT_ADDRESS": TOKEN_ADDRESS})
    path = tmp_path / "out.yaml"
    save_config(config, path)
    text = path.read_text(encoding="utf-8")
    assert "s3cret" not in text
    assert yaml.safe_load(text)["wallet"]["seed"] == "${APP_SEED}"
