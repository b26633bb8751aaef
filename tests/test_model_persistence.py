"""
test_model_persistence.py
~~~~~~~~~~~~~~~~~~~~~~~~~

Unit tests for the JSON weights/biases codec.
"""

import json
import os

import numpy as np
import pytest

from perceptron.errors import (
    LoadError,
    MalformedDocument,
    SaveError,
    TopologyMismatch,
)
from perceptron.matrix import Matrix
from perceptron.model_persistence import (
    NetworkEncoder,
    from_document,
    load_network,
    read_topology,
    save_network,
    to_document,
)
from perceptron.network import Network


@pytest.fixture
def save_path(tmp_path):
    """Path of a save file inside a temporary directory."""
    return str(tmp_path / "3-5-2.json")


@pytest.fixture
def trained_network(simple_network):
    """Create a simple network with some training applied."""
    inputs = [[0.1 * i, 0.2, 1.0 - 0.1 * i] for i in range(10)]
    targets = [[1.0, 0.0] if i % 2 else [0.0, 1.0] for i in range(10)]
    simple_network.train(inputs, targets)
    return simple_network


@pytest.mark.unit
class TestDocument:
    """Test conversion between networks and documents."""

    def test_document_has_two_fields(self, simple_network):
        """Test that the default document holds only weights and biases."""
        document = to_document(simple_network)

        assert set(document) == {'weights', 'biases'}
        assert len(document['weights']) == 2
        assert len(document['biases']) == 2
        assert len(document['weights'][0]) == 5
        assert len(document['weights'][0][0]) == 3
        assert document['biases'][1] == simple_network.biases[1].tolist()

    def test_topology_header(self, simple_network):
        """Test that the layers header is written on request."""
        document = to_document(simple_network, include_topology=True)

        assert document['layers'] == [3, 5, 2]

    def test_missing_field(self, simple_network):
        """Test that a document without biases is malformed."""
        document = to_document(simple_network)
        del document['biases']

        with pytest.raises(MalformedDocument):
            from_document(document, simple_network.layers)

    def test_not_an_object(self, simple_network):
        """Test that a JSON array is not a document."""
        with pytest.raises(MalformedDocument):
            from_document([], simple_network.layers)

    def test_non_numeric_matrix(self, simple_network):
        """Test that non-numeric cells are refused."""
        document = to_document(simple_network)
        document['weights'][0] = [['a', 'b', 'c']] * 5

        with pytest.raises(MalformedDocument):
            from_document(document, simple_network.layers)

    def test_wrong_shape(self, simple_network):
        """Test that a document from another topology is refused."""
        other = Network([3, 4, 2])

        with pytest.raises(TopologyMismatch):
            from_document(to_document(other), simple_network.layers)

    def test_wrong_transition_count(self, simple_network):
        """Test that a deeper network's document is refused."""
        other = Network([3, 5, 2, 2])

        with pytest.raises(TopologyMismatch):
            from_document(to_document(other), simple_network.layers)

    def test_header_mismatch(self, simple_network):
        """Test that a conflicting layers header is refused."""
        document = to_document(simple_network, include_topology=True)
        document['layers'] = [3, 5, 3]

        with pytest.raises(TopologyMismatch):
            from_document(document, simple_network.layers)


@pytest.mark.unit
class TestNetworkEncoder:
    """Tests for the JSON encoder used by every writer."""

    def test_encodes_matrix(self):
        """Test that a Matrix is written as row-major nested lists."""
        matrix = Matrix.from_data([[1.0, 2.0], [3.0, 4.0]])

        assert json.loads(json.dumps(matrix, cls=NetworkEncoder)) == [[1.0, 2.0], [3.0, 4.0]]

    def test_encodes_numpy_values(self):
        """Test that numpy arrays and scalars are written as plain JSON."""
        payload = {'array': np.array([[0.5], [1.5]]), 'scalar': np.float64(0.25)}

        assert json.loads(json.dumps(payload, cls=NetworkEncoder)) == {
            'array': [[0.5], [1.5]],
            'scalar': 0.25
        }

    def test_rejects_unknown_objects(self):
        """Test that other objects still fail to serialize."""
        with pytest.raises(TypeError):
            json.dumps(object(), cls=NetworkEncoder)


@pytest.mark.integration
class TestSaveLoad:
    """Test saving to and loading from files."""

    def test_save_then_load_reproduces_values(self, simple_network, save_path):
        """Test that an untouched network round-trips cell for cell."""
        simple_network.save(save_path)

        restored = Network([3, 5, 2])
        restored.load(save_path)

        assert restored.weights == simple_network.weights
        assert restored.biases == simple_network.biases

    def test_load_preserves_trained_weights(self, trained_network, save_path):
        """Test that trained weights survive saving and loading."""
        save_network(trained_network, save_path)

        restored = Network([3, 5, 2])
        load_network(restored, save_path)

        assert restored.weights == trained_network.weights
        assert restored.biases == trained_network.biases
        assert (
            restored.feed_forward([0.2, 0.4, 0.6])
            == trained_network.feed_forward([0.2, 0.4, 0.6])
        )

    def test_saved_file_is_plain_json(self, simple_network, save_path):
        """Test the on-disk shape of the document."""
        save_network(simple_network, save_path)

        with open(save_path, encoding='utf-8') as f:
            document = json.load(f)

        assert list(document) == ['weights', 'biases']

    def test_load_clears_activation_cache(self, simple_network, save_path):
        """Test that a cache from the old parameters is discarded."""
        simple_network.save(save_path)
        simple_network.feed_forward([0.1, 0.2, 0.3])

        simple_network.load(save_path)

        assert simple_network.activation_cache == []

    def test_read_topology(self, simple_network, save_path, tmp_path):
        """Test reading the optional layers header."""
        simple_network.save(save_path, include_topology=True)
        bare_path = str(tmp_path / "bare.json")
        simple_network.save(bare_path)

        assert read_topology(save_path) == [3, 5, 2]
        assert read_topology(bare_path) is None

    def test_save_to_missing_directory(self, simple_network, tmp_path):
        """Test that the codec does not create directories."""
        path = str(tmp_path / "missing" / "net.json")

        with pytest.raises(SaveError):
            simple_network.save(path)
        assert not os.path.exists(path)

    def test_load_missing_file(self, simple_network, tmp_path):
        """Test that a missing file is a load error."""
        with pytest.raises(LoadError):
            simple_network.load(str(tmp_path / "nope.json"))

    def test_load_invalid_json(self, simple_network, save_path):
        """Test that a corrupt file is a malformed document."""
        with open(save_path, 'w', encoding='utf-8') as f:
            f.write('{"weights": [')

        with pytest.raises(MalformedDocument):
            simple_network.load(save_path)

    def test_failed_load_keeps_parameters(self, simple_network, save_path):
        """Test that nothing is replaced when loading fails."""
        Network([3, 4, 2]).save(save_path)
        weights = list(simple_network.weights)

        with pytest.raises(TopologyMismatch):
            simple_network.load(save_path)
        assert simple_network.weights == weights
