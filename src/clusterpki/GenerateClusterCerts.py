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
# Generate CA and Node Certificates for a Cluster Plan
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

import argparse
import sys

from clusterpki                  import CertificateHelper
from clusterpki.ClusterTopology  import readPlanFile
from clusterpki.LocalPKI         import LocalPKI
from clusterpki.PKIConfiguration import PKIConfiguration
from clusterpki.PKIErrors        import PKIError


# ###### Main program #######################################################
def main(argv : list[str] | None = None) -> int:
   parser = argparse.ArgumentParser(
      description = 'Generate a CA and certificates for all nodes of a cluster plan')
   parser.add_argument('plan',
                       help = 'plan file (YAML)')
   parser.add_argument('-c', '--config', default = None,
                       help = 'PKI configuration file')
   parser.add_argument('-o', '--destination', default = None,
                       help = 'destination directory (overrides the configuration)')
   parser.add_argument('-v', '--verbose', action = 'store_true', default = False,
                       help = 'print subject and subjectAltName of generated certificates')
   options = parser.parse_args(argv)

   CertificateHelper.VerboseMode = options.verbose

   try:
      configuration = PKIConfiguration(options.config)
      if options.destination is not None:
         configuration.Configuration['destinationDir'] = options.destination
      topology = readPlanFile(options.plan)
      pki = LocalPKI.fromConfiguration(configuration, log = sys.stdout)
      identities = pki.generateClusterCerts(topology)
   except PKIError as e:
      sys.stderr.write('ERROR: ' + str(e) + '\n')
      return 1

   sys.stdout.write('Generated ' + str(len(identities)) + ' key/certificate pairs in ' +
                    configuration.get('destinationDir') + '\n')
   return 0


if __name__ == '__main__':
   sys.exit(main())
