"""Protobuf wire-format encoders for the bodies of Geyser update messages."""