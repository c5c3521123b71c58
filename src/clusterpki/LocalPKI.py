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
# File-Based PKI for a Cluster
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

from typing import Final, Iterable, TextIO

from clusterpki import CertificateHelper
from clusterpki.CertificateHelper import CA, CertificateType, DefaultCACSR, DefaultProfileName, \
                                         SigningConfiguration, buildCA, describeCertificate, \
                                         signCertificate
from clusterpki.CertificateStore  import persist
from clusterpki.ClusterTopology   import ClusterTopology, DefaultCertificateRoles
from clusterpki.PKIConfiguration  import PKIConfiguration
from clusterpki.SubjectAltNames   import buildNodeRequest, computeBaselineSANs


CAIdentity : Final[str] = 'ca'


class LocalPKI:
   """
   Creates a Certificate Authority and one key/certificate pair per cluster
   node, stored as files in a single destination directory:
   <name>-key.pem and <name>.pem, with <name> being "ca" for the authority
   and the node's host name otherwise.

   Files are written as soon as they are created. A failed run therefore
   leaves the files written so far in place.
   """

   # ###### Constructor #####################################################
   def __init__(self,
                caCSR            : str | dict     = DefaultCACSR,
                caConfigFile     : str | None     = None,
                caSigningProfile : str | None     = DefaultProfileName,
                destinationDir   : str            = 'generated/keys',
                log              : TextIO | None  = None,
                certificateRoles : Iterable[str]  = DefaultCertificateRoles):
      self.CACSR            : Final[str | dict]      = caCSR
      self.CAConfigFile     : Final[str | None]      = caConfigFile
      self.CASigningProfile : Final[str | None]      = caSigningProfile
      self.DestinationDir   : Final[str]             = destinationDir
      self.Log              : Final[TextIO | None]   = log
      self.CertificateRoles : Final[tuple[str, ...]] = tuple(certificateRoles)


   # ###### Create from configuration #######################################
   @staticmethod
   def fromConfiguration(configuration : PKIConfiguration,
                         log           : TextIO | None = None) -> 'LocalPKI':
      return LocalPKI(caCSR            = configuration.get('caCSR'),
                      caConfigFile     = configuration.get('caConfigFile'),
                      caSigningProfile = configuration.get('caSigningProfile'),
                      destinationDir   = configuration.get('destinationDir'),
                      log              = log,
                      certificateRoles = configuration.get('certificateRoles'))


   # ###### Write progress message ##########################################
   def writeLog(self, message : str, colour : str = '34') -> None:
      if self.Log is not None:
         self.Log.write('\x1b[' + colour + 'm' + message + '\x1b[0m\n')


   # ###### Write key and certificate files #################################
   def writeFiles(self, key : bytes, cert : bytes, name : str) -> None:
      persist(name, key, cert, self.DestinationDir)
      if CertificateHelper.VerboseMode:
         self.writeLog(describeCertificate(cert), '37')


   # ###### Generate CA and certificates for all nodes ######################
   def generateClusterCerts(self, topology : ClusterTopology) -> list[str]:
      # ====== Check signing policy =========================================
      signingConfig = SigningConfiguration.fromFile(self.CAConfigFile)
      signingConfig.profile(self.CASigningProfile)

      # ====== Create the CA ================================================
      self.writeLog('Generating CA certificate ...')
      key, cert = buildCA(self.CACSR, topology.CAExpiry)
      self.writeFiles(key, cert, CAIdentity)
      ca = CA(key, cert, signingConfig, self.CASigningProfile)
      identities : list[str] = [ CAIdentity ]

      # ====== Names shared by all node certificates ========================
      baseline = computeBaselineSANs(topology.ServiceCIDR)

      # ====== Create certificates for all nodes ============================
      for node in topology.nodesForRoles(self.CertificateRoles):
         self.writeLog('Generating certificates for "' + node.Host + '"')
         request = buildNodeRequest(node, baseline,
                                    topology.ClusterName,
                                    topology.CertificateLocation)
         key, cert = signCertificate(ca, request,
                                     certType = CertificateType.Peer,
                                     expiry   = topology.CertificateExpiry,
                                     identity = node.Host)
         self.writeFiles(key, cert, node.Host)
         identities.append(node.Host)

      return identities


   # Alias:
   provision = generateClusterCerts
