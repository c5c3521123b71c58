#!/usr/bin/env python3
# ==========================================================================
#         ____            _                     _____           _
#        / ___| _   _ ___| |_ ___ _ __ ___     |_   _|__   ___ | |___
#        \___ \| | | / __| __/ _ \ '_ ` _ \ _____| |/ _ \ / _ \| / __|
#         ___) | |_| \__ \ ||  __/ | | | | |_____| | (_) | (_) | \__ \
#        |____/ \__, |___/\__\___|_| |_| |_|     |_|\___/ \___/|_|___/
#               |___/
#                             --- System-Tools ---
#                  https://www.nntb.no/~dreibh/system-tools/
# ==========================================================================
#
# Subject Alternative Names for Cluster Node Certificates
# Copyright (C) 2015-2025 by Thomas Dreibholz
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.
#
# Contact: thomas.dreibholz@gmail.com

import ipaddress
from typing import Final, Iterable

from clusterpki.CertificateHelper import CertificateRequest
from clusterpki.ClusterTopology   import CertificateLocation, Node
from clusterpki.PKIErrors         import InvalidCIDRError


# Cluster-internal DNS names of the Kubernetes API service:
KubernetesDNSNames : Final[tuple[str, ...]] = (
   'kubernetes',
   'kubernetes.default',
   'kubernetes.default.svc',
   'kubernetes.default.svc.cluster.local'
)
LegacyServiceIP : Final[str] = '10.3.0.10'   # Kept for compatibility
LoopbackIP      : Final[str] = '127.0.0.1'


# ###### Append names, skipping empty names and duplicates ##################
def appendUnique(names : list[str], candidates : Iterable[str]) -> list[str]:
   for candidate in candidates:
      if candidate and (candidate not in names):
         names.append(candidate)
   return names


# ###### Compute the cluster's service IP from the service CIDR #############
def computeServiceIP(serviceCIDR : str) -> str:
   # NOTE: This is the network address with its last octet incremented by
   #       one. The increment wraps within the octet, without carry into the
   #       other octets.
   if '/' not in serviceCIDR:
      raise InvalidCIDRError('Invalid service CIDR block ' + repr(serviceCIDR),
                             operation = 'Computing service IP')
   try:
      network = ipaddress.ip_network(serviceCIDR.strip(), strict = False)
   except ValueError as e:
      raise InvalidCIDRError('Invalid service CIDR block ' + repr(serviceCIDR),
                             operation = 'Computing service IP') from e
   if network.version != 4:
      raise InvalidCIDRError('Service CIDR block ' + repr(serviceCIDR) + ' is not IPv4',
                             operation = 'Computing service IP')

   octets = bytearray(network.network_address.packed)
   octets[3] = (octets[3] + 1) & 0xff
   return str(ipaddress.IPv4Address(bytes(octets)))


# ###### Compute SANs common to all node certificates #######################
def computeBaselineSANs(serviceCIDR : str) -> list[str]:
   serviceIP = computeServiceIP(serviceCIDR)
   return appendUnique([ ], list(KubernetesDNSNames) +
                            [ LegacyServiceIP, LoopbackIP, serviceIP ])


# ###### Build the certificate request for a node ###########################
def buildNodeRequest(node        : Node,
                     baseline    : list[str],
                     clusterName : str,
                     locality    : CertificateLocation | None = None) -> CertificateRequest:
   if locality is None:
      locality = CertificateLocation()
   sans = appendUnique(list(baseline), [ node.Host, node.InternalIP, node.IP ])
   # All node certificates share the cluster name as CN; the SANs identify the node.
   return CertificateRequest(clusterName, sans,
                             country = locality.Country,
                             state   = locality.State,
                             city    = locality.City)
