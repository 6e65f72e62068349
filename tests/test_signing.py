import base64
import json
import tempfile
import unittest
from pathlib import Path

from solders.keypair import Keypair
from solders.signature import Signature
from solders.transaction import Transaction

from helpers import unsigned_transfer

from condarb.errors import SignerUnavailable, SubmissionError
from condarb.execution.signing import load_signer, sign_transaction


class SigningTest(unittest.TestCase):
    def test_missing_key_file(self) -> None:
        with self.assertRaises(SignerUnavailable):
            load_signer("/nonexistent/wallet.json")

    def test_malformed_key_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "wallet.json"
            path.write_text('{"secret": "nope"}')
            with self.assertRaises(SignerUnavailable):
                load_signer(path)

    def test_loads_key_file(self) -> None:
        keypair = Keypair()
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "wallet.json"
            path.write_text(json.dumps(list(bytes(keypair))))
            loaded = load_signer(path)
        self.assertEqual(keypair.pubkey(), loaded.pubkey())

    def test_signs_api_transaction(self) -> None:
        keypair = Keypair()
        signed = Transaction.from_bytes(base64.b64decode(sign_transaction(unsigned_transfer(keypair), keypair)))

        self.assertNotEqual(Signature.default(), signed.signatures[0])
        signed.verify()

    def test_garbage_transaction_is_a_submission_error(self) -> None:
        with self.assertRaises(SubmissionError):
            sign_transaction(base64.b64encode(b"not a transaction").decode("ascii"), Keypair())


if __name__ == "__main__":
    unittest.main()
