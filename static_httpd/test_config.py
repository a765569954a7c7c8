import pytest
from pydantic import ValidationError

from static_httpd.config import ServerConfig, load_config


def write_conf(path, body):
    path.write_text(f"<?xml version=\"1.0\"?>\n<config>\n{body}\n</config>\n", encoding="utf-8")
    return path


def test_on_off_and_ip_lists(docroot):
    config = ServerConfig(
        document_root=docroot,
        directory_listing="ON",
        allowed_ips="127.0.0.1, ::1 ,",
        denied_ips="",
    )
    assert config.directory_listing is True
    assert config.allowed_ips == frozenset({"127.0.0.1", "::1"})
    assert config.denied_ips == frozenset()


def test_invalid_values_rejected(docroot, tmp_path):
    with pytest.raises(ValidationError):
        ServerConfig(document_root=docroot, directory_listing="maybe")
    with pytest.raises(ValidationError):
        ServerConfig(document_root=docroot, port=70000)
    with pytest.raises(ValidationError):
        ServerConfig(document_root=tmp_path / "nowhere")


def test_config_is_immutable(docroot):
    config = ServerConfig(document_root=docroot)
    with pytest.raises(ValidationError):
        config.port = 8080


def test_relative_document_root_is_canonicalized(tmp_path, monkeypatch):
    (tmp_path / "site" / "pages").mkdir(parents=True)
    monkeypatch.chdir(tmp_path)
    config = ServerConfig(document_root="site/pages/../pages")
    assert config.document_root == (tmp_path / "site" / "pages").resolve()


def test_load_config_reads_every_option(docroot, tmp_path):
    conf = write_conf(tmp_path / "conf.xml", f"""
        <port>8081</port>
        <DocumentRoot>{docroot}</DocumentRoot>
        <DirectoryListing>on</DirectoryListing>
        <Allow>127.0.0.1,10.0.0.5</Allow>
        <Deny>10.0.0.6</Deny>
        <AccessLog>{tmp_path}/logs/access.log</AccessLog>
        <ErrorLog>{tmp_path}/logs/error.log</ErrorLog>
    """)
    config = load_config(conf)
    assert config.port == 8081
    assert config.document_root == docroot
    assert config.directory_listing is True
    assert config.allowed_ips == frozenset({"127.0.0.1", "10.0.0.5"})
    assert config.denied_ips == frozenset({"10.0.0.6"})
    assert config.access_log_path == tmp_path / "logs" / "access.log"
    assert config.error_log_path == tmp_path / "logs" / "error.log"
    assert (tmp_path / "logs").is_dir()


def test_load_config_substitutes_defaults(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    conf = write_conf(tmp_path / "conf.xml", """
        <port>not-a-port</port>
        <DocumentRoot>/definitely/not/here</DocumentRoot>
        <Directory>sometimes</Directory>
        <Allow></Allow>
    """)
    config = load_config(conf)
    assert config.port == 80
    assert config.document_root == (tmp_path / "www").resolve()
    assert config.directory_listing is False
    assert config.allowed_ips == frozenset()
    assert config.access_log_path is None
    assert config.error_log_path is None


def test_directory_alias(docroot, tmp_path):
    conf = write_conf(tmp_path / "conf.xml", f"<DocumentRoot>{docroot}</DocumentRoot><Directory>On</Directory>")
    assert load_config(conf).directory_listing is True


def test_missing_or_broken_file_gives_defaults(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert load_config(tmp_path / "absent.xml").port == 80
    broken = tmp_path / "broken.xml"
    broken.write_text("<config><port>81</config>")
    config = load_config(broken)
    assert config.port == 80
    assert config.document_root == (tmp_path / "www").resolve()
