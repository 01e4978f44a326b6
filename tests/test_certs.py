from cryptography import x509

from twitchauth.certs import ensure_self_signed_cert
from twitchauth.paths import default_cert_paths, default_data_dir


def test_generates_localhost_cert(tmp_path):
    cert_path, key_path = ensure_self_signed_cert(tmp_path / "c.pem", tmp_path / "k.pem")
    assert cert_path.exists() and key_path.exists()

    cert = x509.load_pem_x509_certificate(cert_path.read_bytes())
    san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
    assert "localhost" in san.value.get_values_for_type(x509.DNSName)


def test_existing_files_are_kept(tmp_path):
    cert_path, key_path = tmp_path / "c.pem", tmp_path / "k.pem"
    cert_path.write_text("cert")
    key_path.write_text("key")
    ensure_self_signed_cert(cert_path, key_path)
    assert cert_path.read_text() == "cert"


def test_default_paths_follow_env(tmp_path, monkeypatch):
    monkeypatch.setenv("TWITCHAUTH_DATA_DIR", str(tmp_path / "data"))
    assert default_data_dir() == tmp_path / "data"
    cert, key = default_cert_paths()
    assert cert.parent == tmp_path / "data"
    assert key.name == "localhost-key.pem"
