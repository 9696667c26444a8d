"""Groth16 / BN254 withdrawal proof verification."""
