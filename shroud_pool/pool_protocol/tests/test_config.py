"""
Tests for protocol configuration
"""

from py_ecc.optimized_bn128 import curve_order, field_modulus

from shroud_pool.pool_protocol import config


class TestConfigParameters:
    """Test configuration parameter values"""

    def test_field_is_bn254_scalar_field(self):
        """Field modulus matches the pairing library's curve order"""
        assert config.FIELD_MODULUS == curve_order
        assert config.BASE_FIELD_MODULUS == field_modulus

    def test_tree_parameters(self):
        """Tree depth and root window"""
        assert config.TREE_LEVELS == 20
        assert config.MAX_LEAVES == 2**20
        assert config.ROOT_HISTORY_SIZE == 30
        assert config.ZERO_VALUE == 0

    def test_proof_layout(self):
        """Compressed proof is A || B || C"""
        assert config.PROOF_SIZE_BYTES == (
            2 * config.G1_COMPRESSED_BYTES + config.G2_COMPRESSED_BYTES
        )
        assert config.PUBLIC_INPUT_COUNT == 3

    def test_validate_config(self):
        """Configuration validation passes"""
        assert config.validate_config() is True
