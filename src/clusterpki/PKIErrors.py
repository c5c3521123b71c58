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
# Cluster PKI Error Types
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

from typing import Final


# ###### Base class of all PKI errors #######################################
class PKIError(Exception):

   # ###### Constructor #####################################################
   def __init__(self,
                message   : str,
                identity  : str | None = None,
                operation : str | None = None):
      super().__init__(message)
      self.Message   : Final[str]        = message
      self.Identity  : Final[str | None] = identity
      self.Operation : Final[str | None] = operation


   # ###### Convert to string ###############################################
   def __str__(self) -> str:
      text = ''
      if self.Operation:
         text = self.Operation
         if self.Identity:
            text += ' for "' + self.Identity + '"'
         text += ': '
      elif self.Identity:
         text = self.Identity + ': '
      text += self.Message
      if self.__cause__ is not None:
         text += ': ' + str(self.__cause__)
      return text


# ###### The CA could not be created ########################################
class CAGenerationError(PKIError):
   pass

# ###### The service CIDR block is unusable #################################
class InvalidCIDRError(PKIError):
   pass

# ###### A node certificate could not be signed #############################
class SigningError(PKIError):
   pass

# ###### The destination directory could not be created #####################
class DirectoryCreationError(PKIError):
   pass

# ###### A key or certificate file could not be written #####################
class FileWriteError(PKIError):
   pass

# ###### Bad configuration, plan or signing configuration ###################
class ConfigurationError(PKIError):
   pass
