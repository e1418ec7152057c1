from __future__ import annotations

import bcrypt

from src.main.textbook_ocr import manage


def test_update_env_text_replaces_and_appends():
    env_text = "FLASK_ENV=development\nAUTH_USERNAME=old\n"

    updated = manage.update_env_text(env_text, {"AUTH_USERNAME": "new", "JWT_SECRET": "abc"})

    assert updated == "FLASK_ENV=development\nAUTH_USERNAME=new\nJWT_SECRET=abc\n"


def test_init_secrets_writes_usable_credentials(tmp_path, capsys):
    env_file = tmp_path / ".env"
    env_file.write_text("GOOGLE_CLOUD_VISION_API_KEY=key\nAUTH_PASSWORD=old\n", encoding="utf-8")

    assert manage.main(["init-secrets", "--env-file", str(env_file), "--rounds", "4"]) == 0

    values = dict(line.split("=", 1) for line in env_file.read_text(encoding="utf-8").splitlines())
    assert values["GOOGLE_CLOUD_VISION_API_KEY"] == "key"
    assert values["AUTH_USERNAME"].startswith("user_")
    assert len(values["JWT_SECRET"]) == 128

    output = capsys.readouterr().out
    password = output.split("not saved in plain text): ", 1)[1].strip()
    assert bcrypt.checkpw(password.encode("utf-8"), values["AUTH_PASSWORD"].encode("utf-8"))


def test_hash_password_prints_env_line(capsys):
    assert manage.main(["hash-password", "hunter2", "--rounds", "4"]) == 0

    env_line = [line for line in capsys.readouterr().out.splitlines() if line.startswith("AUTH_PASSWORD=")][0]
    assert bcrypt.checkpw(b"hunter2", env_line.split("=", 1)[1].encode("utf-8"))
