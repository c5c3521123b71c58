import pytest

from clusterpki.CertificateHelper import DefaultCACSR
from clusterpki.PKIConfiguration import PKIConfiguration
from clusterpki.PKIErrors import ConfigurationError


def test_defaults():
    configuration = PKIConfiguration()
    assert configuration.get("caCSR") == DefaultCACSR
    assert configuration.get("caConfigFile") is None
    assert configuration.get("caSigningProfile") == "kubernetes"
    assert configuration.get("destinationDir") == "generated/keys"
    assert configuration.get("certificateRoles") == ["etcd", "master", "worker"]


def test_read_configuration(tmp_path):
    config_file = tmp_path / "pki.conf"
    config_file.write_text(
        "# PKI settings\n"
        "caCSR            = /etc/pki/ca-csr.json\n"
        "caConfigFile     = /etc/pki/ca-config.json\n"
        "caSigningProfile = peer\n"
        "destinationDir   = /var/lib/pki\n"
        "certificateRoles = etcd master worker ingress storage\n"
    )
    configuration = PKIConfiguration(str(config_file))
    assert configuration.get("caCSR") == "/etc/pki/ca-csr.json"
    assert configuration.get("caConfigFile") == "/etc/pki/ca-config.json"
    assert configuration.get("caSigningProfile") == "peer"
    assert configuration.get("destinationDir") == "/var/lib/pki"
    assert configuration.get("certificateRoles") == ["etcd", "master", "worker", "ingress", "storage"]


def test_none_values(tmp_path):
    config_file = tmp_path / "pki.conf"
    config_file.write_text("caCSR = NONE\ncaConfigFile = IGNORE\n")
    configuration = PKIConfiguration(str(config_file))
    assert configuration.get("caCSR") == DefaultCACSR
    assert configuration.get("caConfigFile") is None


@pytest.mark.parametrize("text", [
    "certificateRoles = etcd loadbalancer\n",
    "destinationDir =\n",
    "certificateRoles =\n",
    "this is not a key value line\n",
])
def test_bad_configuration(tmp_path, text):
    config_file = tmp_path / "pki.conf"
    config_file.write_text(text)
    with pytest.raises(ConfigurationError):
        PKIConfiguration(str(config_file))


def test_missing_configuration_file(tmp_path):
    with pytest.raises(ConfigurationError):
        PKIConfiguration(str(tmp_path / "missing.conf"))
