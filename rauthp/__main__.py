from .otp_cli import run

run()
