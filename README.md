# richat-geyser

Building blocks for streaming Solana Geyser notifications as protobuf
`SubscribeUpdate` messages. The package has no runtime dependencies beyond
the standard library.

## What is in it

- **Records** (`richat_geyser.replica`, `richat_geyser.transaction_types`):
  frozen dataclasses for the updates a validator reports. These are
  `ReplicaAccountInfo`, `ReplicaBlockInfo`, `ReplicaEntryInfo`,
  `ReplicaTransactionInfo` with `SanitizedTransaction`,
  `TransactionStatusMeta` and their parts, and slot statuses (`SlotStatus`,
  `Dead`). Integer fields are range-checked on construction. Keys, hashes and
  signatures are checked for length.
- **Wire encoding** (`richat_geyser.encoding`): functions that write message
  bodies straight to protobuf wire format, leaving out default values the way
  proto3 does. `wire` holds the primitives (`encode_varint`, `uint64_field`,
  `bytes_field`, `message_field`, ...). `account`, `slot`, `entry`,
  `block_meta`, `transaction` and `transaction_meta` encode each kind of
  update. Transaction errors are serialized with
  `transaction_meta.serialize_transaction_error`.
- **Messages** (`richat_geyser.message`): `ProtobufMessage` and its variants
  `AccountMessage`, `SlotMessage`, `TransactionMessage`, `EntryMessage` and
  `BlockMetaMessage`. Each one encodes a full `SubscribeUpdate`, including a
  `created_at` timestamp, with one of two encoders:
  - `ProtobufEncoder.RAW` uses the direct encoders.
  - `ProtobufEncoder.PROST` describes every field and serializes it generically.

  Both produce the same bytes. `encode(encoder)` stamps the current time.
  `encode_with_timestamp(encoder, created_at)` takes a `datetime` or a
  `(seconds, nanos)` tuple.
- **Channel** (`richat_geyser.channel`): `Sender` is a ring buffer bounded by
  message count and by total bytes:
  - The capacity is rounded up to a power of two.
  - The buffer keeps a per-slot index, so `subscribe(replay_from_slot, filter)`
    can start a `Receiver` at any slot still held. A slot that is not held
    raises `SlotNotAvailable`. An empty index raises `NotInitialized`.
  - A confirmed or finalized slot status also emits that status for parents
    that never received it.
  - A `RichatFilter` can drop account, transaction or entry updates.

  A `Receiver` is read with `try_recv()`, `await recv()` or `async for`. It
  raises `Lagged` when it falls behind and `Closed` after `Sender.close()`.
- **Config** (`richat_geyser.config`): `Config.load_from_file` and
  `Config.load_from_str` read the JSON configuration:
  - `logs.level`, plus `channel.encoder`, `channel.max_messages` and
    `channel.max_bytes`. Numbers may be given as JSON numbers or digit strings.
  - Unknown fields are rejected. Every failure raises `ConfigError`.
- **Metrics** (`richat_geyser.metrics`): in-process gauges and counters for
  slot statuses, missed slot statuses, channel size and connections per
  transport (`ConnectionsTransport`). `gather()` returns a snapshot and
  `render()` returns the Prometheus text exposition format. The channel updates
  these as it goes.

## Installing

```
pip install .
```

## Checking a configuration file

```
richat-config-check --config config.json
```

`--config` defaults to `config.json`. The command prints `Config is OK!` and
exits with 0 when the file loads. Otherwise it prints the error to stderr and
exits with 1.

## Example

```python
from richat_geyser.channel import Sender
from richat_geyser.config import ConfigChannel
from richat_geyser.message import ProtobufEncoder, SlotMessage
from richat_geyser.replica import SlotStatus

sender = Sender(ConfigChannel(max_messages=1024, max_bytes=1 << 20))
receiver = sender.subscribe(None, None)

sender.push(SlotMessage(slot=42, parent=41, status=SlotStatus.PROCESSED), ProtobufEncoder.RAW)
data = receiver.try_recv()  # encoded SubscribeUpdate bytes
```

## What it does not do

- It runs no servers. The `quic`, `tcp`, `grpc`, `metrics` and `tokio`
  sections of the configuration are accepted as plain objects and not acted
  upon.
- Nothing here listens for subscribers over the network or serves metrics over
  HTTP. `render()` only returns the text.
- It does not attach to a validator. Updates are built from the record classes
  and pushed by the caller.
- It decodes no protobuf; it only encodes.

## Running the tests

```
pip install ".[test]"
pytest
```