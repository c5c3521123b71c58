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
# Key and Certificate File Store
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

import os
from typing import Final

from clusterpki.PKIErrors import DirectoryCreationError, FileWriteError


# Permissions of the generated files and of the destination directory:
DirectoryMode   : Final[int] = 0o744
KeyFileMode     : Final[int] = 0o600   # Read/write for owner only
CertFileMode    : Final[int] = 0o644


# ###### File names of an identity ##########################################
def keyFileName(identityName : str) -> str:
   return identityName + '-key.pem'

def certFileName(identityName : str) -> str:
   return identityName + '.pem'


# ###### Write file with given permissions ##################################
def writeFile(fileName : str, data : bytes, mode : int) -> None:
   fd = os.open(fileName, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
   with os.fdopen(fd, 'wb') as outputFile:
      outputFile.write(data)
   # An already existing file keeps its old mode, and the umask applies:
   os.chmod(fileName, mode)


# ###### Create destination directory, if not already existing ##############
def makeDestinationDirectory(destinationDir : str,
                             identityName   : str | None = None) -> None:
   # Only the directory itself is created, not its parents!
   try:
      os.mkdir(destinationDir, DirectoryMode)
   except FileExistsError:
      return
   except OSError as e:
      raise DirectoryCreationError('Unable to create destination directory ' + destinationDir,
                                   identity = identityName, operation = 'Creating destination directory') from e
   try:
      os.chmod(destinationDir, DirectoryMode)
   except OSError as e:
      raise DirectoryCreationError('Unable to set mode of destination directory ' + destinationDir,
                                   identity = identityName, operation = 'Creating destination directory') from e


# ###### Persist key and certificate of an identity #########################
def persist(identityName    : str,
            privateKeyBytes : bytes,
            certBytes       : bytes,
            destinationDir  : str) -> tuple[str, str]:
   makeDestinationDirectory(destinationDir, identityName)

   # ====== Write private key ===============================================
   keyPath = os.path.join(destinationDir, keyFileName(identityName))
   try:
      writeFile(keyPath, privateKeyBytes, KeyFileMode)
   except OSError as e:
      raise FileWriteError('Unable to write private key ' + keyPath,
                           identity = identityName, operation = 'Writing files') from e

   # ====== Write certificate ===============================================
   certPath = os.path.join(destinationDir, certFileName(identityName))
   try:
      writeFile(certPath, certBytes, CertFileMode)
   except OSError as e:
      raise FileWriteError('Unable to write certificate ' + certPath,
                           identity = identityName, operation = 'Writing files') from e

   return ( keyPath, certPath )
