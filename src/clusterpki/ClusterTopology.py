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
# Cluster Topology and Plan File Reader
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

import yaml
from typing import Final, Iterable

from clusterpki.PKIErrors import ConfigurationError


# Node roles, in plan order:
NodeRoles : Final[tuple[str, ...]] = ( 'etcd', 'master', 'worker', 'ingress', 'storage' )

# Roles receiving node certificates by default:
DefaultCertificateRoles : Final[tuple[str, ...]] = ( 'etcd', 'master', 'worker' )

DefaultExpiry : Final[str] = '17520h'   # 2 years


# ###### Cluster node #######################################################
class Node:

   # ###### Constructor #####################################################
   def __init__(self,
                host       : str,
                ip         : str = '',
                internalIP : str = ''):
      # Empty strings denote "not set":
      self.Host       : Final[str] = host       if host       else ''
      self.IP         : Final[str] = ip         if ip         else ''
      self.InternalIP : Final[str] = internalIP if internalIP else ''


   def __repr__(self) -> str:
      return 'Node(' + repr(self.Host) + ', ' + repr(self.IP) + ', ' + repr(self.InternalIP) + ')'


   def __eq__(self, other : object) -> bool:
      if not isinstance(other, Node):
         return NotImplemented
      return ( (self.Host, self.IP, self.InternalIP) ==
               (other.Host, other.IP, other.InternalIP) )


# ###### Distinguished name location fields #################################
class CertificateLocation:

   # ###### Constructor #####################################################
   def __init__(self,
                country : str = '',
                state   : str = '',
                city    : str = ''):
      # X.509 country names are two-letter codes:
      if country and len(country) != 2:
         raise ConfigurationError('Country ' + repr(country) + ' is not a two-letter code',
                                  operation = 'Checking certificate location')
      self.Country : Final[str] = country if country else ''
      self.State   : Final[str] = state   if state   else ''
      self.City    : Final[str] = city    if city    else ''


# ###### Cluster topology ###################################################
class ClusterTopology:

   # ###### Constructor #####################################################
   def __init__(self,
                clusterName         : str,
                serviceCIDR         : str,
                nodeGroups          : dict[str, list[Node]] | None = None,
                certificateLocation : CertificateLocation | None   = None,
                certificateExpiry   : str                          = DefaultExpiry,
                caExpiry            : str                          = DefaultExpiry):
      self.ClusterName         : Final[str]                   = clusterName
      self.ServiceCIDR         : Final[str]                   = serviceCIDR
      self.NodeGroups          : dict[str, list[Node]]        = { }
      if nodeGroups:
         for role, nodes in nodeGroups.items():
            self.NodeGroups[role] = list(nodes)
      self.CertificateLocation : Final[CertificateLocation]   = \
         certificateLocation if certificateLocation else CertificateLocation()
      self.CertificateExpiry   : Final[str]                   = certificateExpiry
      self.CAExpiry            : Final[str]                   = caExpiry


   # ###### Get nodes of the given roles, in the order of the roles #########
   def nodesForRoles(self, roles : Iterable[str]) -> list[Node]:
      nodes : list[Node] = [ ]
      for role in roles:
         nodes.extend(self.NodeGroups.get(role, [ ]))
      return nodes


# ###### Get a value from nested plan mappings ##############################
def _lookup(plan : dict, path : str, default = None):
   value = plan
   for key in path.split('.'):
      if not isinstance(value, dict):
         return default
      value = value.get(key)
      if value is None:
         return default
   return value


# ###### Parse plan from YAML text ##########################################
def parsePlan(text : str) -> ClusterTopology:
   try:
      plan = yaml.safe_load(text)
   except yaml.YAMLError as e:
      raise ConfigurationError('Unable to parse plan', operation = 'Reading plan') from e
   if not isinstance(plan, dict):
      raise ConfigurationError('Plan is not a mapping', operation = 'Reading plan')

   clusterName = _lookup(plan, 'cluster.name')
   if not clusterName:
      raise ConfigurationError('Missing cluster.name', operation = 'Reading plan')
   serviceCIDR = _lookup(plan, 'cluster.networking.service_cidr_block')
   if not serviceCIDR:
      raise ConfigurationError('Missing cluster.networking.service_cidr_block',
                               operation = 'Reading plan')

   # ====== Node groups =====================================================
   nodeGroups : dict[str, list[Node]] = { }
   for role in NodeRoles:
      entries = _lookup(plan, role + '.nodes', [ ])
      if not isinstance(entries, list):
         raise ConfigurationError('Bad node list for role ' + role,
                                  operation = 'Reading plan')
      nodes : list[Node] = [ ]
      for entry in entries:
         if not isinstance(entry, dict):
            raise ConfigurationError('Bad node entry for role ' + role,
                                     operation = 'Reading plan')
         host = str(entry.get('host') or '')
         # Skip unfilled template slots:
         if host == '':
            continue
         nodes.append(Node(host,
                           str(entry.get('ip') or ''),
                           str(entry.get('internalip') or '')))
      nodeGroups[role] = nodes

   # ====== Certificate settings ============================================
   location = CertificateLocation(
      str(_lookup(plan, 'cluster.certificates.location_country', '')),
      str(_lookup(plan, 'cluster.certificates.location_state',   '')),
      str(_lookup(plan, 'cluster.certificates.location_city',    '')))

   return ClusterTopology(str(clusterName),
                          str(serviceCIDR),
                          nodeGroups,
                          location,
                          str(_lookup(plan, 'cluster.certificates.expiry',    DefaultExpiry)),
                          str(_lookup(plan, 'cluster.certificates.ca_expiry', DefaultExpiry)))


# ###### Read plan file #####################################################
def readPlanFile(planFileName : str) -> ClusterTopology:
   try:
      with open(planFileName, 'r', encoding='utf-8') as planFile:
         text = planFile.read()
   except OSError as e:
      raise ConfigurationError('Unable to read plan file ' + planFileName,
                               operation = 'Reading plan') from e
   return parsePlan(text)
