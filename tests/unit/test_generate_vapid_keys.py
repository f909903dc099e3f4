from __future__ import annotations

import sys

from app.notifications import base64url
from app.notifications.vapid import import_vapid_private_key
from scripts.generate_vapid_keys import generate_vapid_keys, main


def test_generated_pair_round_trips_through_importer():
  config = generate_vapid_keys("mailto:ops@locaboard.test")

  assert len(base64url.decode(config.private_key)) == 32
  public_raw = base64url.decode(config.public_key)
  assert len(public_raw) == 65 and public_raw[0] == 0x04
  assert import_vapid_private_key(config.private_key).public_point() == public_raw


def test_main_prints_environment_lines(monkeypatch, capsys):
  monkeypatch.setattr(sys, "argv", ["generate_vapid_keys.py", "--subject", "https://locaboard.fr/contact"])

  main()

  lines = capsys.readouterr().out.strip().splitlines()
  assert [line.split("=", 1)[0] for line in lines] == ["LOCABOARD_VAPID_PUBLIC_KEY", "LOCABOARD_VAPID_PRIVATE_KEY", "LOCABOARD_VAPID_SUBJECT"]
  assert lines[2] == "LOCABOARD_VAPID_SUBJECT=https://locaboard.fr/contact"
