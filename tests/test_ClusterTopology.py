import pytest

from clusterpki.ClusterTopology import CertificateLocation, ClusterTopology, Node, parsePlan, readPlanFile
from clusterpki.PKIErrors import ConfigurationError


PLAN = """\
cluster:
  name: kubernetes
  admin_password: password
  networking:
    pod_cidr_block: 172.16.0.0/16
    service_cidr_block: 172.20.0.0/16
  certificates:
    expiry: 8760h
    ca_expiry: 17520h
    location_country: US
    location_state: New York
    location_city: Troy
etcd:
  expected_count: 1
  nodes:
  - host: etcd01
    ip: 10.0.0.1
    internalip: ""
master:
  expected_count: 1
  nodes:
  - host: master01
    ip: 10.0.0.2
    internalip: 192.168.0.2
worker:
  expected_count: 2
  nodes:
  - host: worker01
    ip: 10.0.0.3
    internalip: ""
  - host: worker02
    ip: 10.0.0.4
    internalip: ""
ingress:
  expected_count: 1
  nodes:
  - host: ingress01
    ip: 10.0.0.5
    internalip: ""
storage:
  expected_count: 0
  nodes: []
"""

TEMPLATE = """\
cluster:
  name: kubernetes
  networking:
    service_cidr_block: 172.20.0.0/16
  certificates:
    expiry: 17520h
    ca_expiry: 17520h
etcd:
  expected_count: 3
  nodes:
  - host: ""
    ip: ""
    internalip: ""
  - host: ""
    ip: ""
    internalip: ""
"""


def test_parse_plan():
    topology = parsePlan(PLAN)
    assert topology.ClusterName == "kubernetes"
    assert topology.ServiceCIDR == "172.20.0.0/16"
    assert topology.CertificateExpiry == "8760h"
    assert topology.CAExpiry == "17520h"
    assert topology.CertificateLocation.Country == "US"
    assert topology.CertificateLocation.State == "New York"
    assert topology.CertificateLocation.City == "Troy"
    assert topology.NodeGroups["etcd"] == [Node("etcd01", "10.0.0.1", "")]
    assert topology.NodeGroups["master"] == [Node("master01", "10.0.0.2", "192.168.0.2")]
    assert topology.NodeGroups["storage"] == []


def test_nodes_for_roles_keeps_role_order():
    topology = parsePlan(PLAN)
    hosts = [node.Host for node in topology.nodesForRoles(["etcd", "master", "worker"])]
    assert hosts == ["etcd01", "master01", "worker01", "worker02"]
    hosts = [node.Host for node in topology.nodesForRoles(["ingress", "etcd", "unknown"])]
    assert hosts == ["ingress01", "etcd01"]


def test_parse_template_skips_unfilled_nodes():
    topology = parsePlan(TEMPLATE)
    assert topology.nodesForRoles(["etcd", "master", "worker"]) == []
    assert topology.CertificateLocation.Country == ""


def test_read_plan_file(tmp_path):
    plan_file = tmp_path / "plan.yaml"
    plan_file.write_text(PLAN)
    assert readPlanFile(str(plan_file)).ClusterName == "kubernetes"


@pytest.mark.parametrize("text", [
    "cluster: [\n",
    "- just\n- a list\n",
    "cluster:\n  networking:\n    service_cidr_block: 10.3.0.0/16\n",
    "cluster:\n  name: test\n",
    "cluster:\n  name: test\n  networking:\n    service_cidr_block: 10.3.0.0/16\netcd:\n  nodes: 5\n",
])
def test_bad_plans(text):
    with pytest.raises(ConfigurationError):
        parsePlan(text)


def test_missing_plan_file(tmp_path):
    with pytest.raises(ConfigurationError):
        readPlanFile(str(tmp_path / "missing.yaml"))


def test_topology_defaults():
    topology = ClusterTopology("kubernetes", "10.3.0.0/16")
    assert topology.NodeGroups == {}
    assert topology.CertificateExpiry == "17520h"
    assert topology.CAExpiry == "17520h"
    assert topology.CertificateLocation.City == ""


def test_country_must_be_two_letter_code():
    with pytest.raises(ConfigurationError) as excinfo:
        CertificateLocation("USA", "New York", "Troy")
    assert "USA" in str(excinfo.value)
    with pytest.raises(ConfigurationError):
        parsePlan(PLAN.replace("location_country: US", "location_country: USA"))
