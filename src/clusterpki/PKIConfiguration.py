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
# Cluster PKI Configuration
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

import configparser

from clusterpki.CertificateHelper import DefaultCACSR, DefaultProfileName
from clusterpki.ClusterTopology   import DefaultCertificateRoles, NodeRoles
from clusterpki.PKIErrors         import ConfigurationError


class PKIConfiguration:

   # ###### Constructor #####################################################
   def __init__(self, configurationFile : str | None = None):
      self.Configuration = {
         'caCSR':            DefaultCACSR,
         'caConfigFile':     None,
         'caSigningProfile': DefaultProfileName,
         'destinationDir':   'generated/keys',
         'certificateRoles': list(DefaultCertificateRoles)
      }
      if configurationFile is not None:
         self.readConfiguration(configurationFile)


   # ###### Read PKI configuration ##########################################
   def readConfiguration(self, configurationFile : str) -> None:
      parsedConfigFile = configparser.RawConfigParser()
      try:
         with open(configurationFile, 'r', encoding='utf-8') as inputFile:
            parsedConfigFile.read_string('[root]\n' + inputFile.read())
      except (OSError, configparser.Error) as e:
         raise ConfigurationError('Unable to read PKI configuration file ' + configurationFile,
                                  operation = 'Reading configuration') from e

      # ====== Read parameters ==============================================
      for parameterName in self.Configuration.keys():
         if parsedConfigFile.has_option('root', parameterName.lower()):
            value = parsedConfigFile.get('root', parameterName.lower()).strip()
            if value == '':
               raise ConfigurationError('Empty value for ' + parameterName,
                                        operation = 'Reading configuration')
            elif parameterName == 'certificateRoles':
               roles = value.split()
               for role in roles:
                  if not role in NodeRoles:
                     raise ConfigurationError('Invalid certificateRoles role ' + role,
                                              operation = 'Reading configuration')
               self.Configuration['certificateRoles'] = roles
            else:
               self.Configuration[parameterName] = value

      # Settings meaning "not set":
      for option in [ 'caCSR', 'caConfigFile' ]:
         if ((self.Configuration[option] != None) and
             (self.Configuration[option].upper() in [ 'NONE', 'IGNORE' ])):
            self.Configuration[option] = DefaultCACSR if option == 'caCSR' else None


   # ###### Get parameter ###################################################
   def get(self, parameterName : str):
      return self.Configuration[parameterName]
