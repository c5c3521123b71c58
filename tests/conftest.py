import pytest
from cryptography import x509

from clusterpki.ClusterTopology import CertificateLocation, ClusterTopology, Node


def load_certificate(path):
    with open(path, "rb") as f:
        return x509.load_pem_x509_certificate(f.read())


def subject_alt_names(cert):
    san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    return [str(name.value) for name in san]


@pytest.fixture
def make_topology():
    def _make(service_cidr="172.20.0.0/16", etcd=(), master=(), worker=(),
              ingress=(), storage=(), cluster_name="kubernetes"):
        return ClusterTopology(
            cluster_name,
            service_cidr,
            {
                "etcd": list(etcd),
                "master": list(master),
                "worker": list(worker),
                "ingress": list(ingress),
                "storage": list(storage),
            },
            CertificateLocation("US", "New York", "Troy"),
        )
    return _make


@pytest.fixture
def etcd_node():
    return Node("etcd01", "10.0.0.1", "")
