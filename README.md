# tesseract

Building blocks for a Certificate Transparency log that publishes its
entries in the Static CT API format.

## Modules

- `tesseract.tls_fields`: describing TLS (RFC 5246) structures as
  dataclasses. Fields carry a tag string (`maxval:N`, `size:S`,
  `minlen:N,maxlen:M`, `selector:Field,val:V`) set with `tls_field()`.
  `field_tag_to_field_info()` parses a tag into a `FieldInfo`, whose
  `check()` tells whether a value fits. Value types: `Uint8`, `Uint16`,
  `Uint24`, `Uint32`, `Uint64`, `Enum` and `FixedBytes[n]`. Errors are
  `TLSStructuralError` and `TLSSyntaxError`, both subclasses of `TLSError`.
- `tesseract.tls_types`: `HashAlgorithm`, `SignatureAlgorithm` (with the
  constants `SHA256`, `SHA384`, `SHA512`, `ANONYMOUS`, `ECDSA`),
  `SignatureAndHashAlgorithm`, `DigitallySigned`, and
  `signature_algorithm_from_pub_key()`, which returns `ECDSA` for an
  elliptic-curve public key and `ANONYMOUS` for anything else.
- `tesseract.staticct`: parsing Static CT API data. `parse_entry_bundle()`
  splits a bundle into its entries, `extract_timestamp_from_bundle()` reads
  the timestamp of the nth entry without parsing the rest, `parse_entry()`
  decodes one entry into an `Entry`, `unmarshal_timestamp()` reads the
  leading timestamp, and `parse_ct_extensions()` returns the leaf index held
  in base64 SCT extensions. Malformed data raises `StaticCTError`.
- `tesseract.pemutil`: `decode_pem()` finds the next PEM block and returns a
  `PEMBlock` with the remaining data; `de_pem()` and
  `read_possible_pem_file()` accept either DER or PEM input;
  `certificate_from_pem()` parses exactly one PEM certificate.
- `tesseract.pem_cert_pool`: `PEMCertPool`, a duplicate-free, ordered set of
  certificates. Loading is strict: `append_certs_from_pem()` returns `False`
  if any certificate block fails to parse, and
  `append_certs_from_pem_file()` raises.
- `tesseract.storage`: `CTStorage`, which adds entries through an appender
  you supply and resolves duplicates by reading the original entry's
  timestamp back from the log, and stores issuer chains through an
  `IssuerStorage`. `cached_store_issuers()` wraps an issuer store so that
  keys already stored are not sent again. Errors are `StorageError`, and
  `PushbackError` when too many duplicate submissions are in flight.
- `tesseract.file_ops`: `mkdir_all()`, `create_temp()`,
  `create_exclusive()` and `sync_dir()`, which create files atomically and
  fsync the directories they change.
- `tesseract.posix_issuers`: `PosixIssuersStorage`, an `IssuerStorage` that
  keeps each issuer as a file under `<root>/issuer/`.

## Installing

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## Examples

Describe a signature:

```python
from tesseract.tls_types import DigitallySigned, SignatureAndHashAlgorithm, SHA256, ECDSA

ds = DigitallySigned(
    algorithm=SignatureAndHashAlgorithm(hash=SHA256, signature=ECDSA),
    signature=b"\x01\x02",
)
print(ds)  # Signature: HashAlgo=SHA256 SignAlgo=ECDSA Value=0102
```

Read entries of an entry bundle:

```python
from tesseract.staticct import extract_timestamp_from_bundle, parse_entry_bundle, parse_entry

ts = extract_timestamp_from_bundle(bundle_bytes, 5)
entries = [parse_entry(raw) for raw in parse_entry_bundle(bundle_bytes).entries]
print(entries[0].leaf_index, entries[0].is_precert)
```

Load a set of roots:

```python
from tesseract.pem_cert_pool import PEMCertPool

pool = PEMCertPool()
pool.append_certs_from_pem_file("roots.pem")
print(len(pool.subjects()))
```

Store issuer certificates on disk:

```python
from tesseract.posix_issuers import PosixIssuersStorage
from tesseract.storage import KV

store = PosixIssuersStorage("/var/lib/ctlog")
store.add_issuers_if_not_exist([KV(b"abcd", der_bytes)])
```

Put entries into a log:

```python
from tesseract.storage import CTStorage

# appender(entry) returns a callable that yields an IndexResult;
# reader has read_checkpoint() and read_entry_bundle(index, partial_size).
with CTStorage(appender, reader, store, max_dedupe_in_flight=100) as storage:
    index, timestamp = storage.add(entry)
    storage.add_issuer_chain(chain[1:])
```

## What the package does not do

- It does not turn tagged dataclasses into TLS bytes or back: `tls_fields`
  only describes and checks fields.
- It has no RFC 6962 structures (leaves, SCTs, tree heads) and no JSON
  bodies for `add-chain`, `add-pre-chain` or `get-roots`.
- It does not build precertificate TBS data or remove the CT poison
  extension.
- It has no log backend of its own: the appender and log reader given to
  `CTStorage` must come from elsewhere. The only issuer store provided keeps
  files on a local POSIX filesystem.
- It runs no HTTP server and has no command-line program.