"""Write a self-signed localhost certificate for the redirect listener.

Files go to the TwitchAuth data dir (override with TWITCHAUTH_DATA_DIR).
"""

from twitchauth.certs import ensure_self_signed_cert

if __name__ == "__main__":
    cert, key = ensure_self_signed_cert()
    print(f"Certificate: {cert}\nKey: {key}")
